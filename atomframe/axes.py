from __future__ import annotations

import logging
from typing import List

from .atoms import Atom, TracePart, derived_atom
from .bag import AtomBag, Resolved, get_m
from .mathutil import clamp01, lin_mix


logger = logging.getLogger("atomframe.axes")

SAFE_ZONE_DAMPING = 0.85


def dampen_danger(raw_mix: float, safe_hint: float) -> float:
    """Safe-zone prior scales danger down multiplicatively, never below 15% of the mix."""
    return clamp01(clamp01(raw_mix) * (1.0 - SAFE_ZONE_DAMPING * clamp01(safe_hint)))


def derive_context_axes(agent_id: str, resolved: Resolved) -> List[Atom]:
    ids = {
        "privacy": f"world:loc:privacy:{agent_id}",
        "control": f"world:loc:control:{agent_id}",
        "crowd": f"world:loc:crowd:{agent_id}",
        "mapDanger": f"world:map:danger:{agent_id}",
        "envHazard": f"world:env:hazard:{agent_id}",
        "escape": f"world:map:escape:{agent_id}",
        "cover": f"world:map:cover:{agent_id}",
        "safeHint": f"world:loc:safeZoneHint:{agent_id}",
        "infoAdequacy": f"obs:infoAdequacy:{agent_id}",
    }
    privacy = clamp01(get_m(resolved, ids["privacy"], 0.0))
    control = clamp01(get_m(resolved, ids["control"], 0.0))
    crowd = clamp01(get_m(resolved, ids["crowd"], 0.0))
    map_danger = clamp01(get_m(resolved, ids["mapDanger"], 0.0))
    env_hazard = clamp01(get_m(resolved, ids["envHazard"], 0.0))
    escape = clamp01(get_m(resolved, ids["escape"], 0.5))
    cover = clamp01(get_m(resolved, ids["cover"], 0.0))
    safe_hint = clamp01(get_m(resolved, ids["safeHint"], 0.0))
    info = clamp01(get_m(resolved, ids["infoAdequacy"], 0.5))

    publicness = clamp01(1.0 - privacy)
    uncertainty = clamp01(1.0 - info)
    surveillance = lin_mix([("control", control, 0.75), ("publicness", publicness, 0.25)])
    danger_mix = lin_mix(
        [
            ("hazardMax", max(map_danger, env_hazard), 0.65),
            ("noEscape", 1.0 - escape, 0.20),
            ("noCover", 1.0 - cover, 0.15),
        ]
    )
    danger = dampen_danger(danger_mix.value, safe_hint)

    def axis(name: str, value: float, used: List[str], parts, formula: str) -> Atom:
        return derived_atom(
            f"ctx:{name}:{agent_id}",
            clamp01(value),
            used=used,
            parts=parts,
            formula_id=f"ctx:{name}@v1",
            notes=formula,
            subject=agent_id,
        )

    out = [
        axis("privacy", privacy, [ids["privacy"]], [TracePart("locPrivacy", privacy, 1.0)], "privacy = locPrivacy"),
        axis(
            "publicness",
            publicness,
            [ids["privacy"]],
            [TracePart("locPrivacy", privacy, -1.0)],
            "publicness = 1 - privacy",
        ),
        axis(
            "uncertainty",
            uncertainty,
            [ids["infoAdequacy"]],
            [TracePart("infoAdequacy", info, -1.0)],
            "uncertainty = 1 - infoAdequacy",
        ),
        axis(
            "surveillance",
            surveillance.value,
            [ids["control"], ids["privacy"]],
            surveillance.parts,
            "surveillance = 0.75*control + 0.25*publicness",
        ),
        axis("crowd", crowd, [ids["crowd"]], [TracePart("locCrowd", crowd, 1.0)], "crowd = locCrowd"),
        axis(
            "danger",
            danger,
            [ids["mapDanger"], ids["envHazard"], ids["escape"], ids["cover"], ids["safeHint"]],
            danger_mix.parts + (TracePart("safeHint", safe_hint, -SAFE_ZONE_DAMPING),),
            "danger = (0.65*max(mapDanger, envHazard) + 0.20*(1-escape) + 0.15*(1-cover)) * (1 - 0.85*safeHint)",
        ),
    ]
    return out


def apply_stage1(bag: AtomBag, agent_id: str) -> List[Atom]:
    """Requires Stage0 atoms in ``bag``; missing inputs fall back to defaults."""
    atoms = derive_context_axes(agent_id, bag.resolve())
    bag.add_many(atoms)
    logger.debug("Stage1 | agent=%s | ctx atoms=%s", agent_id, len(atoms))
    return atoms
