from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union


logger = logging.getLogger("atomframe.atoms")


class AtomOrigin(str, Enum):
    WORLD = "world"
    OBS = "obs"
    OVERRIDE = "override"
    DERIVED = "derived"

    @classmethod
    def coerce(cls, raw: Any) -> "AtomOrigin":
        if isinstance(raw, AtomOrigin):
            return raw
        try:
            return cls(str(raw))
        except ValueError:
            logger.warning("Unknown atom origin %r, treating as derived", raw)
            return cls.DERIVED


# Resolution order: first writer by priority wins.
ORIGIN_PRIORITY: Tuple[AtomOrigin, ...] = (
    AtomOrigin.OVERRIDE,
    AtomOrigin.OBS,
    AtomOrigin.WORLD,
    AtomOrigin.DERIVED,
)


def _finite(value: Any, fallback: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(out):
        return fallback
    return out


@dataclass(frozen=True)
class TracePart:
    name: str
    value: float
    weight: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "value": self.value}
        if self.weight is not None:
            out["weight"] = self.weight
        return out


def trace_parts(parts: Any) -> Tuple[TracePart, ...]:
    """
    Normalize trace parts into one ordered tuple of TracePart records.

    Accepts the list form (``[{name, value, weight?}]`` or TracePart items) and
    the legacy keyed form (``{name: value}`` or ``{name: {val, w}}``). Keyed
    entries keep their insertion order. Non-numeric values become 0.
    """
    if not parts:
        return ()
    out: List[TracePart] = []
    if isinstance(parts, Mapping):
        for name, raw in parts.items():
            if isinstance(raw, Mapping):
                weight = raw.get("w", raw.get("weight"))
                out.append(
                    TracePart(
                        name=str(name),
                        value=_finite(raw.get("val", raw.get("value"))),
                        weight=None if weight is None else _finite(weight),
                    )
                )
            elif isinstance(raw, str):
                # formula strings in the keyed form carry no value
                continue
            else:
                out.append(TracePart(name=str(name), value=_finite(raw)))
        return tuple(out)
    for item in parts:
        if isinstance(item, TracePart):
            out.append(item)
        elif isinstance(item, Mapping):
            weight = item.get("weight")
            out.append(
                TracePart(
                    name=str(item.get("name") or "part"),
                    value=_finite(item.get("value")),
                    weight=None if weight is None else _finite(weight),
                )
            )
    return tuple(out)


Notes = Optional[Union[str, Tuple[str, ...]]]


@dataclass(frozen=True)
class AtomTrace:
    used_atom_ids: Tuple[str, ...] = ()
    parts: Tuple[TracePart, ...] = ()
    formula_id: Optional[str] = None
    notes: Notes = None

    @classmethod
    def build(
        cls,
        used_atom_ids: Iterable[str] = (),
        parts: Any = (),
        *,
        formula_id: Optional[str] = None,
        notes: Notes = None,
    ) -> "AtomTrace":
        return cls(
            used_atom_ids=tuple(str(x) for x in used_atom_ids),
            parts=trace_parts(parts),
            formula_id=formula_id,
            notes=notes,
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "AtomTrace":
        notes = raw.get("notes")
        if isinstance(notes, (list, tuple)):
            # list-form notes are kept item by item
            notes = tuple(str(n) for n in notes)
        elif notes is not None:
            notes = str(notes)
        return cls.build(
            raw.get("usedAtomIds", raw.get("used_atom_ids")) or (),
            raw.get("parts") or (),
            formula_id=raw.get("formulaId", raw.get("formula_id")),
            notes=notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "usedAtomIds": list(self.used_atom_ids),
            "parts": [p.to_dict() for p in self.parts],
        }
        if self.formula_id is not None:
            out["formulaId"] = self.formula_id
        if isinstance(self.notes, tuple):
            out["notes"] = list(self.notes)
        elif self.notes is not None:
            out["notes"] = self.notes
        return out


def atom_namespace(atom_id: str) -> str:
    head, _, _ = atom_id.partition(":")
    return head


@dataclass(frozen=True)
class Atom:
    """
    One named scalar signal.

    ``ns``, ``subject`` and ``target`` are structured fields carried alongside
    the string id so pipeline code never re-parses ids. Magnitude and
    confidence are stored as given after non-finite values are zeroed;
    clamping is the producing stage's job (valence legitimately spans -1..1).
    """

    id: str
    magnitude: float
    confidence: float = 1.0
    origin: AtomOrigin = AtomOrigin.DERIVED
    trace: Optional[AtomTrace] = None
    ns: str = ""
    subject: Optional[str] = None
    target: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "magnitude", _finite(self.magnitude))
        object.__setattr__(self, "confidence", max(0.0, min(1.0, _finite(self.confidence))))
        object.__setattr__(self, "origin", AtomOrigin.coerce(self.origin))
        if not self.ns:
            object.__setattr__(self, "ns", atom_namespace(self.id))

    @property
    def m(self) -> float:
        return self.magnitude

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], *, default_origin: AtomOrigin = AtomOrigin.OVERRIDE) -> "Atom":
        trace_raw = raw.get("trace")
        if trace_raw is None and isinstance(raw.get("meta"), Mapping):
            trace_raw = raw["meta"].get("trace")
        return cls(
            id=str(raw["id"]),
            magnitude=raw.get("magnitude", raw.get("m", 0.0)),
            confidence=raw.get("confidence", raw.get("c", 1.0)),
            origin=AtomOrigin.coerce(raw.get("origin", raw.get("o", default_origin))),
            trace=AtomTrace.from_mapping(trace_raw) if isinstance(trace_raw, Mapping) else None,
            subject=raw.get("subject"),
            target=raw.get("target"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "magnitude": self.magnitude,
            "confidence": self.confidence,
            "origin": self.origin.value,
            "ns": self.ns,
        }
        if self.subject is not None:
            out["subject"] = self.subject
        if self.target is not None:
            out["target"] = self.target
        if self.trace is not None:
            out["trace"] = self.trace.to_dict()
        return out


def derived_atom(
    atom_id: str,
    magnitude: float,
    *,
    used: Iterable[str] = (),
    parts: Any = (),
    formula_id: Optional[str] = None,
    notes: Optional[str] = None,
    subject: Optional[str] = None,
    target: Optional[str] = None,
    confidence: float = 1.0,
) -> Atom:
    return Atom(
        id=atom_id,
        magnitude=magnitude,
        confidence=confidence,
        origin=AtomOrigin.DERIVED,
        trace=AtomTrace.build(used, parts, formula_id=formula_id, notes=notes),
        subject=subject,
        target=target,
    )
