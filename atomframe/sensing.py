"""
Stage0 sensing: raw scene primitives -> ``world:*`` and ``obs:*`` atoms.

Nothing here reads the bag; every function is a pure mapping from scene data
to atoms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .atoms import Atom, AtomOrigin, AtomTrace, TracePart
from .config import ObservationParams, PipelineConfig
from .mathutil import clamp01
from .scene import BodyState, EnvDescriptor, LocationInfo, MapMetrics, Scene, SceneAgent


logger = logging.getLogger("atomframe.sensing")


def _world(atom_id: str, magnitude: float, subject: str, *, notes: str, parts: Sequence[TracePart] = ()) -> Atom:
    return Atom(
        id=atom_id,
        magnitude=clamp01(magnitude),
        confidence=1.0,
        origin=AtomOrigin.WORLD,
        trace=AtomTrace(parts=tuple(parts), notes=notes),
        subject=subject,
    )


def atomize_world_location(
    agent_id: str,
    location: Optional[LocationInfo],
    map_metrics: Optional[MapMetrics] = None,
) -> List[Atom]:
    loc = location or LocationInfo()
    mm = map_metrics or MapMetrics()
    out = [
        _world(f"world:loc:privacy:{agent_id}", loc.privacy, agent_id, notes="location.privacy"),
        _world(f"world:loc:control:{agent_id}", loc.control, agent_id, notes="location.control"),
        _world(f"world:loc:crowd:{agent_id}", loc.crowd, agent_id, notes="location.crowd"),
        _world(f"world:map:cover:{agent_id}", mm.cover, agent_id, notes="mapMetrics.cover"),
        _world(f"world:map:danger:{agent_id}", mm.danger, agent_id, notes="mapMetrics.danger"),
        _world(f"world:map:escape:{agent_id}", mm.escape, agent_id, notes="mapMetrics.escape"),
        _world(f"world:loc:visibility:{agent_id}", loc.visibility, agent_id, notes="location.visibility"),
        _world(f"world:loc:noise:{agent_id}", loc.noise, agent_id, notes="location.noise"),
        _world(
            f"world:loc:normative_pressure:{agent_id}",
            loc.norm_pressure,
            agent_id,
            notes="location.normPressure",
        ),
        _world(f"world:env:hazard:{agent_id}", loc.hazard, agent_id, notes="max(location hazards)"),
        _world(
            f"world:loc:safeZoneHint:{agent_id}",
            loc.safe_zone_hint,
            agent_id,
            notes="location.safeZoneHint or safe_hub/private tag",
        ),
    ]
    if loc.id:
        out.append(
            Atom(
                id=f"world:location:{agent_id}",
                magnitude=1.0,
                origin=AtomOrigin.WORLD,
                trace=AtomTrace(notes=f"location={loc.id}"),
                subject=agent_id,
                target=loc.id,
            )
        )
    for tag in loc.tags:
        out.append(_world(f"world:loc:tag:{agent_id}:{tag}", 1.0, agent_id, notes="location tag"))
    return out


def atomize_world_facts(
    agent_id: str,
    *,
    tick: int = 0,
    body: Optional[BodyState] = None,
    urgency: Optional[float] = None,
) -> List[Atom]:
    out = [
        Atom(
            id=f"world:tick:{int(tick)}",
            magnitude=1.0,
            origin=AtomOrigin.WORLD,
            trace=AtomTrace(notes="canonical tick"),
            subject=agent_id,
        )
    ]
    if body is not None:
        out.append(_world(f"body:fatigue:{agent_id}", body.fatigue, agent_id, notes="body.fatigue"))
        out.append(_world(f"body:pain:{agent_id}", body.pain, agent_id, notes="body.pain"))
        out.append(_world(f"body:stress:{agent_id}", body.stress, agent_id, notes="body.stress"))
    if urgency is not None:
        out.append(_world(f"scene:urgency:{agent_id}", urgency, agent_id, notes="scene.urgency"))
    return out


@dataclass(frozen=True)
class Observation:
    other_id: str
    dist: float
    close: float
    los: float
    aud: float
    conf: float

    @property
    def quality(self) -> float:
        return clamp01(0.6 * self.los + 0.4 * self.aud)


def observe(
    a: SceneAgent,
    b: SceneAgent,
    env: EnvDescriptor,
    params: Optional[ObservationParams] = None,
) -> Observation:
    p = params or ObservationParams()
    if a.pos is not None and b.pos is not None:
        dist = a.pos.distance(b.pos)
    else:
        dist = p.unknown_distance

    close = clamp01(1.0 - dist / max(1e-6, p.r0))
    sight = clamp01(1.0 - dist / max(1e-6, p.sight_range))
    los = clamp01(0.65 * env.visibility + 0.35 * sight - 0.30 * env.crowd)
    aud = clamp01(0.75 * (1.0 - dist / max(1e-6, p.hearing_range)) + 0.25 * (1.0 - env.noise))
    conf = clamp01(max(los, aud) * (0.75 + 0.25 * close))
    return Observation(other_id=b.id, dist=dist, close=close, los=los, aud=aud, conf=conf)


def observation_atoms(agent_id: str, obs: Observation) -> List[Atom]:
    parts = (
        TracePart("dist", obs.dist),
        TracePart("close", obs.close),
        TracePart("los", obs.los),
        TracePart("aud", obs.aud),
    )
    out = []
    for channel, value in (("nearby", obs.close), ("los", obs.los), ("audio", obs.aud)):
        out.append(
            Atom(
                id=f"obs:{channel}:{agent_id}:{obs.other_id}",
                magnitude=value,
                confidence=obs.conf,
                origin=AtomOrigin.OBS,
                trace=AtomTrace(parts=parts, formula_id=f"obs:{channel}@v1"),
                subject=agent_id,
                target=obs.other_id,
            )
        )
    return out


def atomize_observation(
    a: SceneAgent,
    b: SceneAgent,
    env: EnvDescriptor,
    params: Optional[ObservationParams] = None,
) -> List[Atom]:
    return observation_atoms(a.id, observe(a, b, env, params))


def atomize_info_adequacy(
    agent_id: str,
    env: EnvDescriptor,
    observations: Iterable[Observation] = (),
) -> Atom:
    env_q = clamp01(0.55 * env.visibility + 0.25 * (1.0 - env.noise) + 0.20 * (1.0 - env.crowd))
    qualities = [o.quality for o in observations]
    soc_q = clamp01(sum(qualities) / len(qualities)) if qualities else env_q
    info = clamp01(0.7 * env_q + 0.3 * soc_q)
    return Atom(
        id=f"obs:infoAdequacy:{agent_id}",
        magnitude=info,
        confidence=1.0,
        origin=AtomOrigin.OBS,
        trace=AtomTrace(
            used_atom_ids=tuple(f"obs:los:{agent_id}:{o.other_id}" for o in observations)
            + tuple(f"obs:audio:{agent_id}:{o.other_id}" for o in observations),
            parts=(TracePart("envQuality", env_q, 0.7), TracePart("socialQuality", soc_q, 0.3)),
            formula_id="obs:infoAdequacy@v1",
            notes=f"observed={len(qualities)}",
        ),
        subject=agent_id,
    )


def build_stage0(scene: Scene, config: Optional[PipelineConfig] = None) -> List[Atom]:
    cfg = config or PipelineConfig()
    self_id = scene.agent.id
    env = scene.location.env

    atoms = atomize_world_location(self_id, scene.location, scene.map_metrics)
    atoms.extend(atomize_world_facts(self_id, tick=scene.tick, body=scene.body, urgency=scene.urgency))

    unique: Dict[str, SceneAgent] = {}
    for other in scene.other_agents:
        if other.id != self_id:
            unique.setdefault(other.id, other)
    observations = [observe(scene.agent, other, env, cfg.observation) for other in unique.values()]
    for obs in observations:
        atoms.extend(observation_atoms(self_id, obs))
    atoms.append(atomize_info_adequacy(self_id, env, observations))

    logger.debug("Stage0 | agent=%s | atoms=%s | observed=%s", self_id, len(atoms), len(observations))
    return atoms
