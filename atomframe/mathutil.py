from __future__ import annotations

import math
from typing import Iterable, NamedTuple, Sequence, Tuple

import torch

from .atoms import TracePart


def clamp01(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def clamp11(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return max(-1.0, min(1.0, value))


class Mix(NamedTuple):
    value: float
    parts: Tuple[TracePart, ...]


def lin_mix(parts: Sequence[Tuple[str, float, float]]) -> Mix:
    """Weighted sum of ``(name, value, weight)`` triples, clamped to [0, 1]."""
    total = 0.0
    out = []
    for name, value, weight in parts:
        total += float(value) * float(weight)
        out.append(TracePart(name=name, value=float(value), weight=float(weight)))
    return Mix(clamp01(total), tuple(out))


def noisy_or(values: Iterable[float]) -> float:
    """Probabilistic union ``1 - prod(1 - v)``; empty input gives 0."""
    vec = torch.tensor([clamp01(v) for v in values], dtype=torch.float64)
    if vec.numel() == 0:
        return 0.0
    return clamp01(1.0 - float(torch.prod(1.0 - vec)))


def weighted_blend(values: Sequence[float], weights: Sequence[float]) -> float:
    vals = torch.tensor([float(v) for v in values], dtype=torch.float64)
    w = torch.tensor([float(x) for x in weights], dtype=torch.float64)
    return clamp01(float(torch.dot(vals, w)))
