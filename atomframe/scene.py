from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .atoms import Atom, AtomOrigin


logger = logging.getLogger("atomframe.scene")

DEFAULT_VISIBILITY = 0.6
DEFAULT_NOISE = 0.3


class SceneError(ValueError):
    pass


@dataclass(frozen=True)
class Vec2:
    x: float
    y: float

    def distance(self, other: "Vec2") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    @classmethod
    def parse(cls, raw: Any) -> Optional["Vec2"]:
        if raw is None:
            return None
        if isinstance(raw, Mapping):
            x, y = raw.get("x"), raw.get("y")
        elif isinstance(raw, (list, tuple)) and len(raw) >= 2:
            x, y = raw[0], raw[1]
        else:
            logger.warning("Unparseable position %r", raw)
            return None
        try:
            fx, fy = float(x), float(y)
        except (TypeError, ValueError):
            logger.warning("Unparseable position %r", raw)
            return None
        if not (math.isfinite(fx) and math.isfinite(fy)):
            return None
        return cls(fx, fy)


@dataclass(frozen=True)
class SceneAgent:
    id: str
    pos: Optional[Vec2] = None


@dataclass(frozen=True)
class EnvDescriptor:
    visibility: float = DEFAULT_VISIBILITY
    crowd: float = 0.0
    noise: float = DEFAULT_NOISE


@dataclass(frozen=True)
class LocationInfo:
    id: Optional[str] = None
    privacy: float = 0.0
    control: float = 0.0
    crowd: float = 0.0
    visibility: float = DEFAULT_VISIBILITY
    noise: float = DEFAULT_NOISE
    norm_pressure: float = 0.0
    hazard: float = 0.0
    safe_zone_hint: float = 0.0
    tags: Tuple[str, ...] = ()

    @property
    def env(self) -> EnvDescriptor:
        return EnvDescriptor(visibility=self.visibility, crowd=self.crowd, noise=self.noise)


@dataclass(frozen=True)
class MapMetrics:
    cover: float = 0.0
    danger: float = 0.0
    escape: float = 0.0


@dataclass(frozen=True)
class BodyState:
    fatigue: float = 0.0
    pain: float = 0.0
    stress: float = 0.0


@dataclass(frozen=True)
class Scene:
    agent: SceneAgent
    location: LocationInfo = field(default_factory=LocationInfo)
    other_agents: Tuple[SceneAgent, ...] = ()
    map_metrics: Optional[MapMetrics] = None
    overrides: Tuple[Atom, ...] = ()
    tom: Tuple[Atom, ...] = ()
    body: Optional[BodyState] = None
    urgency: Optional[float] = None
    tick: int = 0

    @property
    def other_ids(self) -> List[str]:
        # first occurrence wins; a repeated id must not count twice in noisy-OR
        return list(dict.fromkeys(b.id for b in self.other_agents if b.id != self.agent.id))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Scene":
        agent_raw = raw.get("agent")
        if not isinstance(agent_raw, Mapping) or not agent_raw.get("id"):
            raise SceneError("Scene needs an agent with an id")
        agent = SceneAgent(id=str(agent_raw["id"]), pos=Vec2.parse(agent_raw.get("pos")))

        others: List[SceneAgent] = []
        seen = set()
        for item in _seq(raw.get("otherAgents", raw.get("other_agents")), "otherAgents"):
            if not isinstance(item, Mapping) or not item.get("id"):
                logger.warning("Skipping other agent without id: %r", item)
                continue
            other_id = str(item["id"])
            if other_id in seen:
                logger.warning("Skipping duplicate other agent %r", other_id)
                continue
            seen.add(other_id)
            others.append(SceneAgent(id=other_id, pos=Vec2.parse(item.get("pos"))))

        mm_raw = raw.get("mapMetrics") or raw.get("map_metrics")
        map_metrics = None
        if isinstance(mm_raw, Mapping):
            map_metrics = MapMetrics(
                cover=_num(mm_raw.get("cover", mm_raw.get("avgCover")), 0.0),
                danger=_num(mm_raw.get("danger", mm_raw.get("avgDanger")), 0.0),
                escape=_num(mm_raw.get("escape"), 0.0),
            )

        body_raw = raw.get("body")
        body = None
        if isinstance(body_raw, Mapping):
            body = BodyState(
                fatigue=_num(body_raw.get("fatigue"), 0.0),
                pain=_num(body_raw.get("pain"), 0.0),
                stress=_num(body_raw.get("stress"), 0.0),
            )

        urgency = raw.get("urgency")
        return cls(
            agent=agent,
            location=_parse_location(raw.get("location")),
            other_agents=tuple(others),
            map_metrics=map_metrics,
            overrides=_parse_atoms(raw.get("overrides"), AtomOrigin.OVERRIDE, "overrides"),
            tom=_parse_atoms(raw.get("tom"), AtomOrigin.DERIVED, "tom"),
            body=body,
            urgency=None if urgency is None else _num(urgency, 0.0),
            tick=int(_num(raw.get("tick"), 0.0)),
        )


def _num(raw: Any, fallback: float) -> float:
    if raw is None:
        return fallback
    try:
        out = float(raw)
    except (TypeError, ValueError):
        logger.warning("Non-numeric scene value %r, using %s", raw, fallback)
        return fallback
    if not math.isfinite(out):
        return fallback
    return out


def _seq(raw: Any, name: str, *, wrap_str: bool = False) -> Tuple[Any, ...]:
    """List-valued scene field as a tuple; anything else degrades to empty with a warning."""
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    if wrap_str and isinstance(raw, str):
        return (raw,)
    logger.warning("Scene field %s should be a list, got %r; ignoring it", name, raw)
    return ()


def _privacy(raw: Any) -> float:
    if isinstance(raw, str):
        if raw == "private":
            return 1.0
        if raw == "public":
            return 0.0
        return 0.5
    return _num(raw, 0.0)


def _parse_location(raw: Any) -> LocationInfo:
    if not isinstance(raw, Mapping):
        return LocationInfo()
    props = raw.get("properties") if isinstance(raw.get("properties"), Mapping) else {}
    state = raw.get("state") if isinstance(raw.get("state"), Mapping) else {}

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in raw:
                return raw[key]
            if key in props:
                return props[key]
            if key in state:
                return state[key]
        return None

    hazard = _num(pick("hazard"), 0.0)
    for item in _seq(raw.get("hazards"), "location.hazards"):
        if isinstance(item, Mapping):
            hazard = max(hazard, _num(item.get("intensity"), 0.0))

    tags = tuple(str(t) for t in _seq(raw.get("tags"), "location.tags", wrap_str=True))
    safe_raw = pick("safeZoneHint", "safe_zone_hint")
    if safe_raw is None:
        safe = 1.0 if ("safe_hub" in tags or "private" in tags) else 0.0
    else:
        safe = _num(safe_raw, 0.0)

    loc_id = raw.get("id", raw.get("entityId"))
    return LocationInfo(
        id=None if loc_id is None else str(loc_id),
        privacy=_privacy(pick("privacy")),
        control=_num(pick("control", "control_level"), 0.0),
        crowd=_num(pick("crowd", "crowd_level"), 0.0),
        visibility=_num(pick("visibility"), DEFAULT_VISIBILITY),
        noise=_num(pick("noise"), DEFAULT_NOISE),
        norm_pressure=_num(pick("normPressure", "normative_pressure"), 0.0),
        hazard=hazard,
        safe_zone_hint=safe,
        tags=tags,
    )


def _parse_atoms(raw: Any, default_origin: AtomOrigin, name: str) -> Tuple[Atom, ...]:
    out: List[Atom] = []
    for item in _seq(raw, name):
        if isinstance(item, Atom):
            out.append(item)
            continue
        if not isinstance(item, Mapping) or "id" not in item:
            logger.warning("Skipping malformed atom entry %r", item)
            continue
        out.append(Atom.from_mapping(item, default_origin=default_origin))
    return tuple(out)


def scene_summary(scene: Scene) -> Dict[str, Any]:
    return {
        "agentId": scene.agent.id,
        "tick": scene.tick,
        "others": scene.other_ids,
        "overrides": len(scene.overrides),
        "tom": len(scene.tom),
    }
