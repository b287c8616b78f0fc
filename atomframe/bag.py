from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional

from .atoms import ORIGIN_PRIORITY, Atom, AtomOrigin


logger = logging.getLogger("atomframe.bag")

Resolved = Mapping[str, Atom]


class AtomBag:
    """
    Layered atom store, one map per origin.

    ``add`` overwrites within the atom's own layer. ``resolve`` merges the
    layers in ``override > obs > world > derived`` order where the first writer
    wins; lower layers only fill gaps. The resolved view is rebuilt on every
    call, so a stage should resolve once and read from that snapshot.
    """

    def __init__(self, atoms: Optional[Iterable[Atom]] = None) -> None:
        self._layers: Dict[AtomOrigin, Dict[str, Atom]] = {origin: {} for origin in ORIGIN_PRIORITY}
        if atoms:
            self.add_many(atoms)

    def add(self, atom: Atom) -> None:
        self._layers[atom.origin][atom.id] = atom

    def add_many(self, atoms: Iterable[Atom]) -> None:
        for atom in atoms:
            self.add(atom)

    def resolve(self) -> Dict[str, Atom]:
        out: Dict[str, Atom] = {}
        for origin in ORIGIN_PRIORITY:
            for atom_id, atom in self._layers[origin].items():
                if atom_id not in out:
                    out[atom_id] = atom
        return out

    def get_resolved(self, atom_id: str) -> Optional[Atom]:
        return self.resolve().get(atom_id)

    def by_origin(self, origin: AtomOrigin) -> List[Atom]:
        return list(self._layers[AtomOrigin.coerce(origin)].values())

    def layer_sizes(self) -> Dict[str, int]:
        return {origin.value: len(layer) for origin, layer in self._layers.items()}

    def __len__(self) -> int:
        return sum(len(layer) for layer in self._layers.values())

    def __contains__(self, atom_id: object) -> bool:
        return any(atom_id in layer for layer in self._layers.values())


def get_m(resolved: Resolved, atom_id: str, fallback: float = 0.0) -> float:
    atom = resolved.get(atom_id)
    if atom is None:
        return fallback
    m = atom.magnitude
    if not math.isfinite(m):
        return fallback
    return m


def pick_ctx_id(resolved: Resolved, axis: str, self_id: str) -> str:
    """Most specific context id present: ``ctx:final:*`` before ``ctx:*``."""
    final_id = f"ctx:final:{axis}:{self_id}"
    if final_id in resolved:
        return final_id
    return f"ctx:{axis}:{self_id}"


def pick_first(resolved: Resolved, ids: Iterable[str]) -> Optional[str]:
    for atom_id in ids:
        if atom_id in resolved:
            return atom_id
    return None
