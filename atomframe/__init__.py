from .atoms import ORIGIN_PRIORITY, Atom, AtomOrigin, AtomTrace, TracePart, derived_atom, trace_parts
from .axes import apply_stage1, dampen_danger, derive_context_axes
from .bag import AtomBag, get_m, pick_ctx_id
from .catalog import ATOM_SPECS, AtomSpec, describe_atom, resolve_atom_spec
from .config import ObservationParams, PipelineConfig, ThreatParams, ThreatWeights, load_config
from .emotion import apply_stage2, derive_appraisals, derive_emotions, valence_from_unit, valence_to_unit
from .frame import Frame, build_frame, build_frame_from_mapping, explain_atom
from .mathutil import clamp01, clamp11, lin_mix, noisy_or
from .scene import EnvDescriptor, LocationInfo, MapMetrics, Scene, SceneAgent, SceneError, Vec2
from .sensing import atomize_info_adequacy, atomize_observation, atomize_world_location, build_stage0
from .threat import apply_stage3, derive_threat_stack
from .validate import ValidationReport, validate_atoms

__all__ = [
    "ATOM_SPECS",
    "Atom",
    "AtomBag",
    "AtomOrigin",
    "AtomSpec",
    "AtomTrace",
    "EnvDescriptor",
    "Frame",
    "LocationInfo",
    "MapMetrics",
    "ORIGIN_PRIORITY",
    "ObservationParams",
    "PipelineConfig",
    "Scene",
    "SceneAgent",
    "SceneError",
    "ThreatParams",
    "ThreatWeights",
    "TracePart",
    "ValidationReport",
    "Vec2",
    "apply_stage1",
    "apply_stage2",
    "apply_stage3",
    "atomize_info_adequacy",
    "atomize_observation",
    "atomize_world_location",
    "build_frame",
    "build_frame_from_mapping",
    "build_stage0",
    "clamp01",
    "clamp11",
    "dampen_danger",
    "derive_appraisals",
    "derive_context_axes",
    "derive_emotions",
    "derive_threat_stack",
    "derived_atom",
    "describe_atom",
    "explain_atom",
    "get_m",
    "lin_mix",
    "load_config",
    "noisy_or",
    "pick_ctx_id",
    "resolve_atom_spec",
    "trace_parts",
    "valence_from_unit",
    "valence_to_unit",
    "validate_atoms",
]
