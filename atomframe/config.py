from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TypeVar


logger = logging.getLogger("atomframe.config")


@dataclass(frozen=True)
class ObservationParams:
    r0: float = 5.0
    sight_range: float = 8.0
    hearing_range: float = 10.0
    # distance assumed when either position is unknown
    unknown_distance: float = 6.0


@dataclass(frozen=True)
class ThreatWeights:
    env: float = 0.28
    soc: float = 0.28
    auth: float = 0.16
    unc: float = 0.12
    body: float = 0.10
    sc: float = 0.06

    def as_dict(self) -> Dict[str, float]:
        return {f.name: float(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class ThreatParams:
    baseline_hostility: float = 0.06
    shield_strength: float = 0.85
    w_los: float = 0.6
    w_aud: float = 0.4
    distrust_gain: float = 0.75
    default_trust: float = 0.45


# camelCase keys as they appear in scene/config JSON
_ALIASES: Dict[str, str] = {
    "Rs": "sight_range",
    "Rh": "hearing_range",
    "sightRange": "sight_range",
    "hearingRange": "hearing_range",
    "unknownDistance": "unknown_distance",
    "baselineHostility": "baseline_hostility",
    "socialBaselineHostility": "baseline_hostility",
    "shieldStrength": "shield_strength",
    "socialShieldStrength": "shield_strength",
    "wLos": "w_los",
    "wAud": "w_aud",
    "distrustGain": "distrust_gain",
    "defaultTrust": "default_trust",
}

P = TypeVar("P")


def merge_params(base: P, overrides: Optional[Mapping[str, Any]]) -> P:
    """Return ``base`` with numeric overrides applied; unknown keys are logged and skipped."""
    if not overrides:
        return base
    known = {f.name for f in fields(base)}
    changes: Dict[str, float] = {}
    for key, raw in overrides.items():
        name = _ALIASES.get(str(key), str(key))
        if name not in known:
            logger.warning("Ignoring unknown %s key %r", type(base).__name__, key)
            continue
        try:
            changes[name] = float(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s.%s=%r", type(base).__name__, name, raw)
    return replace(base, **changes)


@dataclass(frozen=True)
class PipelineConfig:
    observation: ObservationParams = field(default_factory=ObservationParams)
    threat_weights: ThreatWeights = field(default_factory=ThreatWeights)
    threat_params: ThreatParams = field(default_factory=ThreatParams)
    include_emotion: bool = True

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "PipelineConfig":
        if not raw:
            return cls()
        cfg = cls()
        return cfg.merged(raw)

    def merged(self, raw: Mapping[str, Any]) -> "PipelineConfig":
        observation = merge_params(self.observation, _section(raw, "observation"))
        weights = merge_params(self.threat_weights, _section(raw, "threatWeights", "threat_weights", "weights"))
        params = merge_params(self.threat_params, _section(raw, "threatParams", "threat_params", "params"))
        include_emotion = raw.get("includeEmotion", raw.get("include_emotion", self.include_emotion))
        return PipelineConfig(
            observation=observation,
            threat_weights=weights,
            threat_params=params,
            include_emotion=bool(include_emotion),
        )


def _section(raw: Mapping[str, Any], *keys: str) -> Optional[Mapping[str, Any]]:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, Mapping):
            return value
    return None


def load_config(path: Optional[str]) -> PipelineConfig:
    if not path:
        return PipelineConfig()
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, Mapping):
        raise ValueError(f"Config file must hold a JSON object: {path}")
    return PipelineConfig.from_mapping(raw)
