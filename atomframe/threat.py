from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import torch

from .atoms import Atom, TracePart, derived_atom
from .bag import AtomBag, Resolved, get_m, pick_ctx_id, pick_first
from .config import ThreatParams, ThreatWeights, merge_params
from .mathutil import clamp01, lin_mix, noisy_or, weighted_blend


logger = logging.getLogger("atomframe.threat")

CHANNELS: Tuple[str, ...] = ("env", "soc", "auth", "unc", "body", "sc")

WeightsArg = Union[ThreatWeights, Mapping[str, Any], None]
ParamsArg = Union[ThreatParams, Mapping[str, Any], None]


@dataclass(frozen=True)
class DyadThreat:
    other_id: str
    close: float
    los: float
    aud: float
    percept: float
    base_threat: float
    shield: float
    effective_threat: float
    t: float
    used_atom_ids: Tuple[str, ...]


def _dyad_ids(self_id: str, other_id: str, key: str) -> List[str]:
    base = f"tom:dyad:{self_id}:{other_id}:{key}"
    return [f"{base}_ctx", f"{base}_prior", base]


def _as_weights(weights: WeightsArg) -> ThreatWeights:
    if isinstance(weights, ThreatWeights):
        return weights
    return merge_params(ThreatWeights(), weights)


def _as_params(params: ParamsArg) -> ThreatParams:
    if isinstance(params, ThreatParams):
        return params
    return merge_params(ThreatParams(), params)


def assess_dyads(
    agent_id: str,
    resolved: Resolved,
    other_ids: Sequence[str],
    params: ThreatParams,
) -> List[DyadThreat]:
    """Per-other social threat terms; ToM dyad atoms win over the trust fallback."""
    if not other_ids:
        return []

    rows = []
    for b in other_ids:
        nearby_id = f"obs:nearby:{agent_id}:{b}"
        los_id = f"obs:los:{agent_id}:{b}"
        aud_id = f"obs:audio:{agent_id}:{b}"
        trust_id = f"tom:trustEff:{agent_id}:{b}"
        used = [nearby_id, los_id, aud_id]

        threat_id = pick_first(resolved, _dyad_ids(agent_id, b, "threat"))
        support_id = pick_first(resolved, _dyad_ids(agent_id, b, "support"))
        trust = clamp01(get_m(resolved, trust_id, params.default_trust))

        if threat_id is not None:
            base_threat = clamp01(get_m(resolved, threat_id, 0.0))
            used.append(threat_id)
        else:
            base_threat = clamp01(params.baseline_hostility + (1.0 - trust) * params.distrust_gain)
            used.append(trust_id)

        if support_id is not None:
            shield = clamp01(get_m(resolved, support_id, 0.0))
            used.append(support_id)
        else:
            shield = trust
            if trust_id not in used:
                used.append(trust_id)

        rows.append(
            (
                b,
                clamp01(get_m(resolved, nearby_id, 0.0)),
                clamp01(get_m(resolved, los_id, 0.0)),
                clamp01(get_m(resolved, aud_id, 0.0)),
                base_threat,
                shield,
                tuple(used),
            )
        )

    close = torch.tensor([r[1] for r in rows], dtype=torch.float64)
    los = torch.tensor([r[2] for r in rows], dtype=torch.float64)
    aud = torch.tensor([r[3] for r in rows], dtype=torch.float64)
    base = torch.tensor([r[4] for r in rows], dtype=torch.float64)
    shield = torch.tensor([r[5] for r in rows], dtype=torch.float64)

    percept = torch.clamp(params.w_los * los + params.w_aud * aud, 0.0, 1.0)
    effective = base * (1.0 - params.shield_strength * shield)
    t = torch.clamp(close * effective * percept, 0.0, 1.0)

    out = []
    for i, row in enumerate(rows):
        out.append(
            DyadThreat(
                other_id=row[0],
                close=row[1],
                los=row[2],
                aud=row[3],
                percept=float(percept[i]),
                base_threat=row[4],
                shield=row[5],
                effective_threat=float(effective[i]),
                t=float(t[i]),
                used_atom_ids=row[6],
            )
        )
    return out


def derive_threat_stack(
    agent_id: str,
    resolved: Resolved,
    other_ids: Sequence[str],
    weights: WeightsArg = None,
    params: ParamsArg = None,
) -> List[Atom]:
    W = _as_weights(weights)
    P = _as_params(params)

    map_danger_id = f"world:map:danger:{agent_id}"
    hazard_id = f"world:env:hazard:{agent_id}"
    danger_id = pick_ctx_id(resolved, "danger", agent_id)
    control_id = f"world:loc:control:{agent_id}"
    norm_id = pick_ctx_id(resolved, "normPressure", agent_id)
    unc_id = pick_ctx_id(resolved, "uncertainty", agent_id)
    crowd_id = pick_ctx_id(resolved, "crowd", agent_id)
    urgency_id = f"scene:urgency:{agent_id}"
    surv_id = pick_ctx_id(resolved, "surveillance", agent_id)
    body_ids = [f"body:{k}:{agent_id}" for k in ("fatigue", "pain", "stress")]

    map_danger = get_m(resolved, map_danger_id, 0.0)
    hazard = get_m(resolved, hazard_id, 0.0)
    ctx_danger = get_m(resolved, danger_id, 0.0)
    t_env = clamp01(max(map_danger, hazard, ctx_danger))

    norm_pressure = get_m(resolved, norm_id, 0.0)
    auth = lin_mix([("locControl", get_m(resolved, control_id, 0.0), 0.60), ("normPressure", norm_pressure, 0.40)])

    t_unc = clamp01(get_m(resolved, unc_id, 0.5))

    crowd = get_m(resolved, crowd_id, 0.0)
    sc = lin_mix([("crowd", crowd, 0.55), ("urgency", get_m(resolved, urgency_id, 0.0), 0.45)])

    body_vals = [get_m(resolved, i, 0.0) for i in body_ids]
    t_body = clamp01(max(body_vals))

    dyads = assess_dyads(agent_id, resolved, other_ids, P)
    t_soc = noisy_or(d.t for d in dyads)

    channels = {"env": t_env, "soc": t_soc, "auth": auth.value, "unc": t_unc, "body": t_body, "sc": sc.value}
    w = W.as_dict()
    t_final = weighted_blend([channels[k] for k in CHANNELS], [w[k] for k in CHANNELS])

    surv = get_m(resolved, surv_id, 0.0)
    pressure = lin_mix([("surveillance", surv, 0.5), ("normPressure", norm_pressure, 0.2)])

    support_terms = []
    support_used: List[str] = []
    for b in other_ids:
        nearby_id = f"obs:nearby:{agent_id}:{b}"
        trust_id = f"tom:trustEff:{agent_id}:{b}"
        support_terms.append(
            TracePart(
                f"support:{b}",
                get_m(resolved, nearby_id, 0.0) * get_m(resolved, trust_id, P.default_trust),
                1.0,
            )
        )
        support_used.extend([nearby_id, trust_id])
    support = noisy_or(p.value for p in support_terms)

    def mk(name: str, value: float, used: Sequence[str], parts, notes: str, formula_id: Optional[str] = None) -> Atom:
        return derived_atom(
            f"{name}:{agent_id}",
            clamp01(value),
            used=used,
            parts=parts,
            formula_id=formula_id,
            notes=notes,
            subject=agent_id,
        )

    soc_used: List[str] = []
    for d in dyads:
        soc_used.extend(d.used_atom_ids)

    out = [
        mk(
            "threat:env",
            t_env,
            [map_danger_id, hazard_id, danger_id],
            [
                TracePart("mapDanger", map_danger, 1.0),
                TracePart("envHazard", hazard, 1.0),
                TracePart("ctxDanger", ctx_danger, 1.0),
            ],
            "env threat = max(mapDanger, envHazard, ctxDanger)",
            "threat:env@v1",
        ),
        mk(
            "threat:soc",
            t_soc,
            soc_used,
            [TracePart(f"soc:{d.other_id}", d.t, 1.0) for d in dyads],
            "noisyOr over close * hostility * (1 - shield) * percept per agent",
            "threat:soc@v1",
        ),
        mk(
            "threat:auth",
            auth.value,
            [control_id, norm_id],
            auth.parts,
            "authority mix from control + normPressure",
            "threat:auth@v1",
        ),
        mk(
            "threat:unc",
            t_unc,
            [unc_id],
            [TracePart("uncertainty", t_unc, 1.0)],
            "threat uncertainty from ctx uncertainty",
            "threat:unc@v1",
        ),
        mk(
            "threat:body",
            t_body,
            body_ids,
            [TracePart(n, v, 1.0) for n, v in zip(("fatigue", "pain", "stress"), body_vals)],
            "body threat = max(fatigue, pain, stress)",
            "threat:body@v1",
        ),
        mk(
            "threat:sc",
            sc.value,
            [crowd_id, urgency_id],
            sc.parts,
            "scenario mix from crowd and urgency",
            "threat:sc@v1",
        ),
        mk(
            "threat:final",
            t_final,
            [f"threat:{k}:{agent_id}" for k in CHANNELS],
            [TracePart(f"T_{k}", channels[k], w[k]) for k in CHANNELS],
            "weighted threat blend",
            "threat:final@v1",
        ),
        mk(
            "mind:threat",
            t_final,
            [f"threat:final:{agent_id}"],
            [TracePart("threatFinal", t_final, 1.0)],
            "mind.threat mirrors threat:final",
        ),
        mk(
            "mind:pressure",
            pressure.value,
            [surv_id, norm_id],
            pressure.parts,
            "pressure mix from surveillance and normPressure",
        ),
        mk(
            "mind:support",
            support,
            support_used,
            support_terms,
            "support = noisyOr(nearby * trust)",
        ),
        mk(
            "mind:crowd",
            crowd,
            [crowd_id],
            [TracePart("ctxCrowd", crowd, 1.0)],
            "mind.crowd mirrors ctx crowd",
        ),
    ]
    return out


def apply_stage3(
    bag: AtomBag,
    agent_id: str,
    other_ids: Sequence[str],
    weights: WeightsArg = None,
    params: ParamsArg = None,
) -> List[Atom]:
    """Requires Stage1 atoms and any external ToM atoms already in ``bag``."""
    atoms = derive_threat_stack(agent_id, bag.resolve(), other_ids, weights, params)
    bag.add_many(atoms)
    final = next(a for a in atoms if a.id == f"threat:final:{agent_id}")
    logger.debug("Stage3 | agent=%s | others=%s | threat=%.4f", agent_id, len(other_ids), final.magnitude)
    return atoms
