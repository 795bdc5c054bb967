"""Tiny numeric helpers used by the population passes."""

from __future__ import annotations

import statistics
from collections.abc import Sequence


def median(values: Sequence[float]) -> float | None:
    """Numeric median; ``None`` for an empty sequence."""
    if not values:
        return None
    return statistics.median(values)


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return statistics.fmean(values)


def stddev(values: Sequence[float]) -> float | None:
    """Population standard deviation (``0.0`` for a single value)."""
    if not values:
        return None
    return statistics.pstdev(values)
