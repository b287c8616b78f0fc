from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from .atoms import Atom
from .axes import apply_stage1
from .bag import AtomBag, get_m
from .catalog import describe_atom
from .config import PipelineConfig
from .emotion import EMOTIONS, apply_stage2
from .scene import Scene, scene_summary
from .sensing import build_stage0
from .threat import CHANNELS, apply_stage3


logger = logging.getLogger("atomframe.frame")

CTX_PANEL = ("privacy", "publicness", "surveillance", "crowd", "uncertainty", "danger")
MIND_PANEL = ("threat", "pressure", "support", "crowd")
THREAT_PANEL = CHANNELS + ("final",)


def _panel(index: Mapping[str, Atom], prefix: str, keys: Sequence[str], agent_id: str) -> Dict[str, float]:
    return {key: get_m(index, f"{prefix}:{key}:{agent_id}", 0.0) for key in keys}


@dataclass
class Frame:
    agent_id: str
    tick: int
    atoms: List[Atom]
    index: Dict[str, Atom]
    panels: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def get(self, atom_id: str) -> Optional[Atom]:
        return self.index.get(atom_id)

    def magnitude(self, atom_id: str, fallback: float = 0.0) -> float:
        return get_m(self.index, atom_id, fallback)

    def scoreboard(self) -> List[Dict[str, Any]]:
        out = []
        for key in MIND_PANEL:
            atom = self.index.get(f"mind:{key}:{self.agent_id}")
            value = atom.magnitude if atom else 0.0
            trace = atom.trace if atom else None
            out.append(
                {
                    "key": key,
                    "value": value,
                    "label": f"{key} {round(value * 100)}%",
                    "parts": {p.name: p.value for p in trace.parts} if trace else {},
                    "usedAtomIds": list(trace.used_atom_ids) if trace else [],
                }
            )
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "tick": self.tick,
            "panels": {name: dict(values) for name, values in self.panels.items()},
            "atoms": [atom.to_dict() for atom in self.atoms],
        }


def build_frame(scene: Scene, config: Optional[PipelineConfig] = None) -> Frame:
    """
    Run one tick for ``scene.agent``: Stage0 -> Stage1 -> Stage3 -> Stage2 -> resolve.

    Scene overrides enter the bag with Stage0 so every later stage sees them;
    external ToM atoms are merged after Stage1 and before Stage3.
    """
    cfg = config or PipelineConfig()
    agent_id = scene.agent.id
    logger.debug("Frame build | %s", scene_summary(scene))

    bag = AtomBag()
    bag.add_many(build_stage0(scene, cfg))
    bag.add_many(scene.overrides)

    apply_stage1(bag, agent_id)
    bag.add_many(scene.tom)
    apply_stage3(bag, agent_id, scene.other_ids, cfg.threat_weights, cfg.threat_params)
    if cfg.include_emotion:
        apply_stage2(bag, agent_id)

    index = bag.resolve()
    panels = {
        "ctx": _panel(index, "ctx", CTX_PANEL, agent_id),
        "mind": _panel(index, "mind", MIND_PANEL, agent_id),
        "threat": _panel(index, "threat", THREAT_PANEL, agent_id),
    }
    if cfg.include_emotion:
        panels["emo"] = _panel(index, "emo", EMOTIONS, agent_id)

    logger.debug("Frame ready | agent=%s | tick=%s | layers=%s", agent_id, scene.tick, bag.layer_sizes())
    return Frame(agent_id=agent_id, tick=scene.tick, atoms=list(index.values()), index=index, panels=panels)


def build_frame_from_mapping(raw: Mapping[str, Any], config: Optional[PipelineConfig] = None) -> Frame:
    return build_frame(Scene.from_mapping(raw), config)


def explain_atom(frame: Frame, atom_id: str, *, max_depth: int = 6) -> Dict[str, Any]:
    """Provenance tree following ``trace.usedAtomIds``; repeated ids are not expanded twice."""
    visited: Set[str] = set()

    def walk(current: str, depth: int) -> Dict[str, Any]:
        node: Dict[str, Any] = {"id": current, "spec": describe_atom(current)}
        atom = frame.index.get(current)
        if atom is None:
            node["missing"] = True
            return node
        node["magnitude"] = atom.magnitude
        node["confidence"] = atom.confidence
        node["origin"] = atom.origin.value
        if atom.trace is not None:
            node["formulaId"] = atom.trace.formula_id
            node["notes"] = atom.trace.to_dict().get("notes")
            node["parts"] = [p.to_dict() for p in atom.trace.parts]
        if current in visited:
            node["seen"] = True
            return node
        visited.add(current)
        if atom.trace is None or depth >= max_depth:
            return node
        node["inputs"] = [walk(child, depth + 1) for child in atom.trace.used_atom_ids]
        return node

    return walk(atom_id, 0)
