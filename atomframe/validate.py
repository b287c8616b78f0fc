from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .atoms import Atom
from .catalog import atom_scale, resolve_atom_spec


logger = logging.getLogger("atomframe.validate")


class Severity(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"


@dataclass(frozen=True)
class ValidationIssue:
    severity: Severity
    code: str
    message: str
    atom_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "atomId": self.atom_id,
        }


@dataclass
class ValidationReport:
    issues: List[ValidationIssue] = field(default_factory=list)
    fixed: Optional[List[Atom]] = None

    @property
    def ok(self) -> bool:
        return not any(i.severity is Severity.ERROR for i in self.issues)

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.issues if i.severity is severity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "errors": self.count(Severity.ERROR),
            "warnings": self.count(Severity.WARN),
            "issues": [i.to_dict() for i in self.issues],
        }


def validate_atoms(atoms: Sequence[Atom], *, autofix: bool = False) -> ValidationReport:
    report = ValidationReport(fixed=[] if autofix else None)
    seen = set()

    for atom in atoms:
        out = atom
        if not atom.id:
            report.issues.append(ValidationIssue(Severity.ERROR, "atom.missing_id", "Atom has no id"))
            continue
        if atom.id in seen:
            report.issues.append(
                ValidationIssue(Severity.WARN, "atom.duplicate_id", f"Duplicate atom id: {atom.id}", atom.id)
            )
        seen.add(atom.id)

        # Atom already zeroes non-finite magnitudes, so only the range is checked
        scale = atom_scale(atom.id)
        if atom.magnitude < scale.min or atom.magnitude > scale.max:
            report.issues.append(
                ValidationIssue(
                    Severity.WARN,
                    "atom.range",
                    f"Magnitude out of [{scale.min:g},{scale.max:g}]: {atom.magnitude:.4f}",
                    atom.id,
                )
            )
            out = replace(out, magnitude=max(scale.min, min(scale.max, atom.magnitude)))

        if resolve_atom_spec(atom.id) is None:
            report.issues.append(
                ValidationIssue(Severity.INFO, "catalog.unknown", "No catalog entry for id pattern", atom.id)
            )

        if report.fixed is not None:
            report.fixed.append(out)

    if report.issues:
        logger.debug(
            "Validation | atoms=%s | errors=%s | warnings=%s",
            len(atoms),
            report.count(Severity.ERROR),
            report.count(Severity.WARN),
        )
    return report
