"""
Stage2 appraisal and emotion layer.

Appraisals (``app:*``) are derived from the threat stack and context axes,
then the bag is resolved again so that scripted ``app:*`` overrides feed the
emotion formulas. Valence is stored on the -1..1 axis; use
``valence_to_unit`` at any boundary that expects 0..1.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from .atoms import Atom, AtomOrigin, AtomTrace, derived_atom
from .bag import AtomBag, Resolved, get_m
from .mathutil import clamp01, clamp11


logger = logging.getLogger("atomframe.emotion")

APPRAISALS = ("threat", "uncertainty", "control", "pressure", "attachment", "loss", "goalBlock")
EMOTIONS = ("fear", "anger", "shame", "relief", "resolve", "care", "arousal", "valence")


def valence_to_unit(valence: float) -> float:
    return clamp01((clamp11(valence) + 1.0) / 2.0)


def valence_from_unit(unit: float) -> float:
    return clamp11(clamp01(unit) * 2.0 - 1.0)


def derive_appraisals(agent_id: str, resolved: Resolved) -> List[Atom]:
    threat_id = f"threat:final:{agent_id}"
    unc_id = f"ctx:uncertainty:{agent_id}"
    pub_id = f"ctx:publicness:{agent_id}"
    surv_id = f"ctx:surveillance:{agent_id}"
    norm_id = f"ctx:normPressure:{agent_id}"
    intimacy_id = f"ctx:intimacy:{agent_id}"
    cover_id = f"world:map:cover:{agent_id}"
    escape_id = f"world:map:escape:{agent_id}"

    threat = get_m(resolved, threat_id, 0.0)
    unc = get_m(resolved, unc_id, 0.0)
    pub = get_m(resolved, pub_id, 0.0)
    surv = get_m(resolved, surv_id, 0.0)
    cover = get_m(resolved, cover_id, 0.5)
    escape = get_m(resolved, escape_id, 0.5)

    norm_pressure = get_m(resolved, norm_id, clamp01(0.65 * surv + 0.35 * pub))
    intimacy = get_m(resolved, intimacy_id, clamp01(1.0 - pub))

    control = clamp01(0.45 * cover + 0.35 * escape + 0.20 * (1.0 - unc))
    pressure = clamp01(0.65 * norm_pressure + 0.35 * pub)
    attachment = clamp01(0.75 * intimacy + 0.25 * (1.0 - pub))

    grief_id, pain_id = f"ctx:grief:{agent_id}", f"ctx:pain:{agent_id}"
    tp_id, scarcity_id = f"ctx:timePressure:{agent_id}", f"ctx:scarcity:{agent_id}"
    grief, pain = get_m(resolved, grief_id, 0.0), get_m(resolved, pain_id, 0.0)
    tp, scarcity = get_m(resolved, tp_id, 0.0), get_m(resolved, scarcity_id, 0.0)
    loss = clamp01(0.65 * grief + 0.35 * pain)
    goal_block = clamp01(0.55 * tp + 0.45 * scarcity)

    used = [threat_id, unc_id, pub_id, surv_id, norm_id, intimacy_id, cover_id, escape_id]

    def mk(key: str, value: float, parts: Dict[str, float], extra_used=()) -> Atom:
        # parts arrive keyed by name and are converted to the ordered list form here
        return derived_atom(
            f"app:{key}:{agent_id}",
            clamp01(value),
            used=list(used) + list(extra_used),
            parts=parts,
            formula_id=f"app:{key}@v1",
            notes="stage2: appraisal",
            subject=agent_id,
        )

    return [
        mk("threat", threat, {"threat": threat}),
        mk("uncertainty", unc, {"unc": unc}),
        mk("control", control, {"cover": cover, "escape": escape, "unc": unc}),
        mk("pressure", pressure, {"normPressure": norm_pressure, "pub": pub}),
        mk("attachment", attachment, {"intimacy": intimacy, "pub": pub}),
        mk("loss", loss, {"grief": grief, "pain": pain}, (grief_id, pain_id)),
        mk("goalBlock", goal_block, {"timePressure": tp, "scarcity": scarcity}, (tp_id, scarcity_id)),
    ]


def derive_emotions(agent_id: str, resolved: Resolved) -> List[Atom]:
    app = {key: f"app:{key}:{agent_id}" for key in APPRAISALS}
    threat = get_m(resolved, app["threat"], 0.0)
    unc = get_m(resolved, app["uncertainty"], 0.0)
    control = get_m(resolved, app["control"], 0.4)
    pressure = get_m(resolved, app["pressure"], 0.0)
    attachment = get_m(resolved, app["attachment"], 0.0)
    loss = get_m(resolved, app["loss"], 0.0)
    goal_block = get_m(resolved, app["goalBlock"], 0.0)

    fear = clamp01(threat * (1.0 - control) * (0.5 + 0.5 * unc))
    anger = clamp01(threat * control * (1.0 - unc) * (1.0 - pressure))
    shame = clamp01(pressure * (0.6 + 0.4 * threat) * (1.0 - attachment))
    relief = clamp01((1.0 - threat) * control * (1.0 - goal_block))
    resolve = clamp01(0.55 * control + 0.30 * anger + 0.15 * (1.0 - unc))
    care = clamp01(attachment * (0.65 + 0.35 * (1.0 - threat)))
    arousal = clamp01(0.60 * threat + 0.20 * unc + 0.20 * pressure)
    valence = clamp11((0.55 * relief + 0.35 * care) - (0.60 * fear + 0.35 * shame + 0.25 * anger + 0.55 * loss))

    used = [app[key] for key in APPRAISALS]
    parts = {
        "fear": {"threat": threat, "control": control, "unc": unc},
        "anger": {"threat": threat, "control": control, "unc": unc, "pressure": pressure},
        "shame": {"pressure": pressure, "threat": threat, "attachment": attachment},
        "relief": {"threat": threat, "control": control, "goalBlock": goal_block},
        "resolve": {"control": control, "anger": anger, "unc": unc},
        "care": {"attachment": attachment, "threat": threat},
        "arousal": {"threat": threat, "unc": unc, "pressure": pressure},
        "valence": {
            "relief": relief,
            "care": care,
            "fear": fear,
            "shame": shame,
            "anger": anger,
            "loss": loss,
        },
    }
    values = {
        "fear": fear,
        "anger": anger,
        "shame": shame,
        "relief": relief,
        "resolve": resolve,
        "care": care,
        "arousal": arousal,
        "valence": valence,
    }

    out = []
    for key in EMOTIONS:
        out.append(
            Atom(
                id=f"emo:{key}:{agent_id}",
                magnitude=values[key],
                confidence=1.0,
                origin=AtomOrigin.DERIVED,
                trace=AtomTrace.build(
                    used,
                    parts[key],
                    formula_id=f"emo:{key}@v1",
                    notes="affect axis, range -1..1" if key == "valence" else "stage2: emotion",
                ),
                subject=agent_id,
            )
        )
    return out


def apply_stage2(bag: AtomBag, agent_id: str) -> List[Atom]:
    """Requires Stage3 (``threat:final``) in ``bag``; appraisals are re-resolved before emotions."""
    appraisals = derive_appraisals(agent_id, bag.resolve())
    bag.add_many(appraisals)
    emotions = derive_emotions(agent_id, bag.resolve())
    bag.add_many(emotions)
    logger.debug("Stage2 | agent=%s | app=%s | emo=%s", agent_id, len(appraisals), len(emotions))
    return appraisals + emotions
