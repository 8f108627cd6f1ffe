"""Numeric-safety helpers shared by every engine."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

from ops_insight.errors import InsufficientData

# Days-of-stock / days-left reported when demand is zero
UNBOUNDED_DAYS = 999.0

MIN_SAMPLES_FOR_VARIANCE = 2


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` when the denominator is zero or not finite."""
    if denominator == 0 or not math.isfinite(denominator):
        return default
    return numerator / denominator


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round half away from zero (2.5 -> 3, -2.5 -> -3).

    Python's built-in round() uses banker's rounding, which makes
    dashboard figures disagree by one unit on .5 boundaries.
    """
    if not math.isfinite(value):
        return value
    # str() gives the shortest repr, so 1.005 rounds to 1.01
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def pct(part: float, whole: float, digits: int = 1) -> float:
    """Percentage of ``whole``, 0 when ``whole`` is zero."""
    return round_half_up(safe_div(part * 100.0, whole), digits)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def days_of_cover(stock: float, daily_rate: float, digits: int = 1) -> float:
    """Stock divided by daily usage, UNBOUNDED_DAYS when usage is zero."""
    if daily_rate <= 0:
        return UNBOUNDED_DAYS
    return min(round_half_up(stock / daily_rate, digits), UNBOUNDED_DAYS)


@dataclass
class WelfordAccumulator:
    """
    Implements Welford's online algorithm for calculating mean and variance
    in a single pass (O(1) update).
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0  # Sum of squares of differences from the current mean

    def update(self, new_value: float) -> None:
        self.count += 1
        delta = new_value - self.mean
        self.mean += delta / self.count
        delta2 = new_value - self.mean
        self.m2 += delta * delta2

    def extend(self, values: Iterable[float]) -> WelfordAccumulator:
        for v in values:
            self.update(float(v))
        return self

    @property
    def variance(self) -> float:
        """Sample variance (n - 1)."""
        if self.count < MIN_SAMPLES_FOR_VARIANCE:
            return 0.0
        return self.m2 / (self.count - 1)

    @property
    def population_variance(self) -> float:
        if self.count == 0:
            return 0.0
        return self.m2 / self.count

    @property
    def std_dev(self) -> float:
        return float(np.sqrt(self.variance))

    @property
    def population_std_dev(self) -> float:
        return float(np.sqrt(self.population_variance))


def require_samples(values: Iterable[float], minimum: int = MIN_SAMPLES_FOR_VARIANCE) -> np.ndarray:
    """Return values as an array, raising InsufficientData below ``minimum``."""
    arr = np.asarray(list(values), dtype=np.float64)
    if arr.size < minimum:
        raise InsufficientData(f"Need at least {minimum} observations, got {arr.size}")
    return arr


def coefficient_of_variation(values: Iterable[float]) -> float | None:
    """
    Population std / mean of the samples.

    Returns None when the CV is undefined (fewer than two samples or a
    zero mean).
    """
    try:
        arr = require_samples(values)
    except InsufficientData:
        return None
    mean = float(arr.mean())
    if mean <= 0:
        return None
    return float(arr.std()) / mean
