"""
Provenance catalog for debug tooling.

An ordered, immutable list of id patterns mapped to human descriptions. The
first matching pattern wins, so specific patterns come before generic ones.
The pipeline never consults this module; only describe/explain/validate paths
do.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Pattern, Tuple


NAME = r"[^:\s]+"


@dataclass(frozen=True)
class AtomScale:
    min: float = 0.0
    max: float = 1.0
    low_means: str = "low"
    high_means: str = "high"
    typical: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "min": self.min,
            "max": self.max,
            "lowMeans": self.low_means,
            "highMeans": self.high_means,
        }
        if self.typical:
            out["typical"] = self.typical
        return out


UNIT = AtomScale()
MARKER = AtomScale(low_means="absent", high_means="present")


@dataclass(frozen=True)
class AtomSpec:
    spec_id: str
    pattern: Pattern[str]
    title: str
    meaning: str
    scale: AtomScale = UNIT
    formula: Optional[str] = None
    produced_by: Tuple[str, ...] = ()
    consumed_by: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedSpec:
    spec: AtomSpec
    params: Dict[str, str]

    def render(self, template: Optional[str]) -> Optional[str]:
        if template is None:
            return None
        return template.format(**self.params)

    def to_dict(self) -> Dict[str, Any]:
        spec = self.spec
        return {
            "specId": spec.spec_id,
            "title": self.render(spec.title),
            "meaning": self.render(spec.meaning),
            "scale": spec.scale.to_dict(),
            "formula": self.render(spec.formula),
            "producedBy": list(spec.produced_by),
            "consumedBy": list(spec.consumed_by),
            "tags": list(spec.tags),
            "params": dict(self.params),
        }


def _spec(spec_id: str, pattern: str, title: str, meaning: str, **kwargs: Any) -> AtomSpec:
    return AtomSpec(
        spec_id=spec_id,
        pattern=re.compile(pattern.replace("{N}", NAME)),
        title=title,
        meaning=meaning,
        **kwargs,
    )


SENSING = ("atomframe.sensing",)
AXES = ("atomframe.axes",)
THREAT = ("atomframe.threat",)
EMOTION = ("atomframe.emotion",)
FRAME = ("atomframe.frame",)


def _build_specs() -> Tuple[AtomSpec, ...]:
    return (
        _spec(
            "world.tick",
            r"^world:tick:(?P<tick>[0-9]+)$",
            "World: tick {tick}",
            "Discrete simulation tick; anchor for replay.",
            scale=MARKER,
            produced_by=SENSING,
        ),
        _spec(
            "world.location.ref",
            r"^world:location:(?P<selfId>{N})$",
            "World: location of {selfId}",
            "Reference atom for the location {selfId} is in; target holds the location id.",
            scale=MARKER,
            produced_by=SENSING,
        ),
        _spec(
            "world.loc.safeZoneHint",
            r"^world:loc:safeZoneHint:(?P<selfId>{N})$",
            "Location: safe-zone hint ({selfId})",
            "Prior that the place is a safe zone; multiplicatively suppresses perceived danger.",
            scale=AtomScale(low_means="no hint", high_means="known safe zone"),
            produced_by=SENSING,
            consumed_by=AXES,
            tags=("world", "loc"),
        ),
        _spec(
            "world.loc.tag",
            r"^world:loc:tag:(?P<selfId>{N}):(?P<tag>{N})$",
            "Location tag '{tag}' ({selfId})",
            "Marker: the location carries tag '{tag}'.",
            scale=MARKER,
            produced_by=SENSING,
            tags=("world", "loc"),
        ),
        _spec(
            "world.loc.metric",
            r"^world:loc:(?P<metric>{N}):(?P<selfId>{N})$",
            "Location: {metric} ({selfId})",
            "Location-supplied fact '{metric}' for {selfId}, normalised to 0..1.",
            produced_by=SENSING,
            consumed_by=AXES + THREAT,
            tags=("world", "loc"),
        ),
        _spec(
            "world.map.metric",
            r"^world:map:(?P<metric>cover|danger|escape):(?P<selfId>{N})$",
            "Map: {metric} ({selfId})",
            "Local map metric '{metric}' around {selfId}.",
            produced_by=SENSING,
            consumed_by=AXES + THREAT + EMOTION,
            tags=("world", "map"),
        ),
        _spec(
            "world.env.hazard",
            r"^world:env:hazard:(?P<selfId>{N})$",
            "Environment hazard ({selfId})",
            "Strongest environmental hazard intensity at the location.",
            scale=AtomScale(low_means="no hazard", high_means="lethal hazard"),
            formula="max(location.hazards[].intensity)",
            produced_by=SENSING,
            consumed_by=AXES + THREAT,
            tags=("world", "hazard"),
        ),
        _spec(
            "body.metric",
            r"^body:(?P<metric>fatigue|pain|stress):(?P<selfId>{N})$",
            "Body: {metric} ({selfId})",
            "Physiological {metric} level of {selfId}.",
            produced_by=SENSING,
            consumed_by=THREAT,
            tags=("body",),
        ),
        _spec(
            "scene.urgency",
            r"^scene:urgency:(?P<selfId>{N})$",
            "Scene urgency ({selfId})",
            "How urgent the current scenario is for {selfId}.",
            produced_by=SENSING,
            consumed_by=THREAT,
            tags=("scene",),
        ),
        _spec(
            "obs.nearby",
            r"^obs:nearby:(?P<selfId>{N}):(?P<otherId>{N})$",
            "Observation: {otherId} is near {selfId}",
            "Closeness of {otherId} to {selfId}.",
            scale=AtomScale(low_means="far", high_means="adjacent"),
            formula="clamp01(1 - dist/r0)",
            produced_by=SENSING,
            consumed_by=THREAT,
            tags=("obs",),
        ),
        _spec(
            "obs.los",
            r"^obs:los:(?P<selfId>{N}):(?P<otherId>{N})$",
            "Observation: line of sight {selfId} -> {otherId}",
            "Proxy for how well {selfId} can see {otherId}.",
            formula="clamp01(0.65*visibility + 0.35*clamp01(1 - dist/Rs) - 0.30*crowd)",
            produced_by=SENSING,
            consumed_by=THREAT,
            tags=("obs",),
        ),
        _spec(
            "obs.audio",
            r"^obs:audio:(?P<selfId>{N}):(?P<otherId>{N})$",
            "Observation: audibility {selfId} <- {otherId}",
            "Proxy for how well {selfId} can hear {otherId}.",
            formula="clamp01(0.75*(1 - dist/Rh) + 0.25*(1 - noise))",
            produced_by=SENSING,
            consumed_by=THREAT,
            tags=("obs",),
        ),
        _spec(
            "obs.infoAdequacy",
            r"^obs:infoAdequacy:(?P<selfId>{N})$",
            "Observation: information adequacy ({selfId})",
            "How well {selfId} can perceive the scene this tick.",
            scale=AtomScale(low_means="blind", high_means="full picture"),
            formula="0.7*envQuality + 0.3*socialQuality",
            produced_by=SENSING,
            consumed_by=AXES,
            tags=("obs",),
        ),
        _spec(
            "ctx.final.axis",
            r"^ctx:final:(?P<axis>{N}):(?P<selfId>{N})$",
            "Context (subjective): {axis} ({selfId})",
            "Subjective final variant of ctx:{axis}; preferred by threat reads when present.",
            consumed_by=THREAT,
            tags=("ctx", "final"),
        ),
        _spec(
            "ctx.danger",
            r"^ctx:danger:(?P<selfId>{N})$",
            "Context: danger ({selfId})",
            "Perceived danger of the situation, damped by the safe-zone prior.",
            scale=AtomScale(low_means="safe", high_means="dangerous"),
            formula="(0.65*max(mapDanger, envHazard) + 0.20*(1-escape) + 0.15*(1-cover)) * (1 - 0.85*safeHint)",
            produced_by=AXES,
            consumed_by=THREAT,
            tags=("ctx",),
        ),
        _spec(
            "ctx.surveillance",
            r"^ctx:surveillance:(?P<selfId>{N})$",
            "Context: surveillance ({selfId})",
            "How watched {selfId} is.",
            scale=AtomScale(low_means="nobody watching", high_means="under observation"),
            formula="0.75*control + 0.25*publicness",
            produced_by=AXES,
            consumed_by=THREAT + EMOTION,
            tags=("ctx",),
        ),
        _spec(
            "ctx.uncertainty",
            r"^ctx:uncertainty:(?P<selfId>{N})$",
            "Context: uncertainty ({selfId})",
            "How unclear the situation is.",
            scale=AtomScale(low_means="clear", high_means="opaque"),
            formula="1 - infoAdequacy",
            produced_by=AXES,
            consumed_by=THREAT + EMOTION,
            tags=("ctx",),
        ),
        _spec(
            "ctx.publicness",
            r"^ctx:publicness:(?P<selfId>{N})$",
            "Context: publicness ({selfId})",
            "How public the place is.",
            scale=AtomScale(low_means="private", high_means="public"),
            formula="1 - privacy",
            produced_by=AXES,
            consumed_by=EMOTION,
            tags=("ctx",),
        ),
        _spec(
            "ctx.axis",
            r"^ctx:(?P<axis>{N}):(?P<selfId>{N})$",
            "Context: {axis} ({selfId})",
            "Context axis '{axis}' for {selfId}.",
            produced_by=AXES,
            consumed_by=THREAT + EMOTION,
            tags=("ctx",),
        ),
        _spec(
            "tom.dyad",
            r"^tom:dyad:(?P<selfId>{N}):(?P<otherId>{N}):(?P<key>{N})$",
            "ToM: {selfId} about {otherId}: {key}",
            "Belief of {selfId} about {otherId} ('{key}'), supplied by the theory-of-mind subsystem.",
            consumed_by=THREAT,
            tags=("tom",),
        ),
        _spec(
            "tom.trustEff",
            r"^tom:trustEff:(?P<selfId>{N}):(?P<otherId>{N})$",
            "ToM: effective trust {selfId} -> {otherId}",
            "Effective trust of {selfId} in {otherId}; fallback when dyad threat/support is absent.",
            scale=AtomScale(low_means="distrust", high_means="full trust", typical="0.45 default"),
            consumed_by=THREAT,
            tags=("tom",),
        ),
        _spec(
            "threat.final",
            r"^threat:final:(?P<selfId>{N})$",
            "Threat: final ({selfId})",
            "Blended threat for {selfId}.",
            scale=AtomScale(low_means="safe", high_means="critical", typical="0.1-0.7"),
            formula="0.28*env + 0.28*soc + 0.16*auth + 0.12*unc + 0.10*body + 0.06*sc",
            produced_by=THREAT,
            consumed_by=EMOTION + FRAME,
            tags=("threat",),
        ),
        _spec(
            "threat.soc",
            r"^threat:soc:(?P<selfId>{N})$",
            "Threat: social ({selfId})",
            "Compound threat from other agents; independent sources combine by noisy-OR.",
            formula="noisyOr_b(close * hostility * (1 - 0.85*shield) * percept)",
            produced_by=THREAT,
            consumed_by=FRAME,
            tags=("threat",),
        ),
        _spec(
            "threat.channel",
            r"^threat:(?P<channel>env|auth|unc|body|sc):(?P<selfId>{N})$",
            "Threat channel: {channel} ({selfId})",
            "Threat channel '{channel}' for {selfId}.",
            produced_by=THREAT,
            consumed_by=FRAME,
            tags=("threat",),
        ),
        _spec(
            "mind.metric",
            r"^mind:(?P<metric>threat|pressure|support|crowd):(?P<selfId>{N})$",
            "Mind: {metric} ({selfId})",
            "Scoreboard summary '{metric}' for {selfId}.",
            produced_by=THREAT,
            consumed_by=FRAME,
            tags=("mind",),
        ),
        _spec(
            "app.appraisal",
            r"^app:(?P<key>{N}):(?P<selfId>{N})$",
            "Appraisal: {key} ({selfId})",
            "Appraisal scalar '{key}' feeding the emotion layer.",
            produced_by=EMOTION,
            consumed_by=EMOTION,
            tags=("app",),
        ),
        _spec(
            "emo.valence",
            r"^emo:valence:(?P<selfId>{N})$",
            "Affect: valence ({selfId})",
            "Signed hedonic tone; -1 is strongly negative, +1 strongly positive.",
            scale=AtomScale(min=-1.0, max=1.0, low_means="negative", high_means="positive"),
            formula="(0.55*relief + 0.35*care) - (0.60*fear + 0.35*shame + 0.25*anger + 0.55*loss)",
            produced_by=EMOTION,
            tags=("emo", "axis"),
        ),
        _spec(
            "emo.emotion",
            r"^emo:(?P<key>{N}):(?P<selfId>{N})$",
            "Emotion: {key} ({selfId})",
            "Emotion intensity '{key}'.",
            produced_by=EMOTION,
            tags=("emo",),
        ),
    )


ATOM_SPECS: Tuple[AtomSpec, ...] = _build_specs()


def resolve_atom_spec(atom_id: str) -> Optional[ResolvedSpec]:
    for spec in ATOM_SPECS:
        match = spec.pattern.match(atom_id)
        if match:
            params = {k: v for k, v in match.groupdict().items() if v is not None}
            return ResolvedSpec(spec=spec, params=params)
    return None


def atom_scale(atom_id: str) -> AtomScale:
    resolved = resolve_atom_spec(atom_id)
    return resolved.spec.scale if resolved else UNIT


def describe_atom(atom_id: str) -> Dict[str, Any]:
    resolved = resolve_atom_spec(atom_id)
    if resolved is None:
        return {"id": atom_id, "specId": None, "title": atom_id, "meaning": "no specification"}
    out = resolved.to_dict()
    out["id"] = atom_id
    return out
