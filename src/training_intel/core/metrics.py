"""
Pure metric computation functions.

All functions are pure and typed for testability.  Shared by the overload
analyzer, the trend forecaster and personal-record detection so that the
1RM estimate and weight rounding rules cannot drift apart.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .config import (
    BRZYCKI_MAX_REPS,
    INCREMENT_MAGNITUDE_THRESHOLD,
    LARGE_WEIGHT_INCREMENT,
    SMALL_WEIGHT_INCREMENT,
    TREND_SLOPE_THRESHOLD,
    VOLUME_TREND_PERCENT,
)
from .models import SessionAggregate, SetRecord, Trend


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def brzycki_1rm(weight: float, reps: int, max_reps: int = BRZYCKI_MAX_REPS) -> float:
    """
    Estimate one-rep max using the Brzycki formula.

    1RM = weight × 36 / (37 − min(reps, 36))

    Reps are clamped to ``max_reps`` so the denominator stays positive.

    Args:
        weight: Load lifted (kg)
        reps: Reps performed

    Returns:
        Estimated 1RM in kg
    """
    r = min(reps, max_reps)
    return weight * 36 / (37 - r)


def round_to_increment(value: float, increment: float) -> float:
    """
    Round to the nearest practical plate increment (halves round up).

    Args:
        value: Raw weight
        increment: Plate increment, e.g. 2.5 or 5

    Returns:
        Weight rounded to a multiple of ``increment``
    """
    if increment <= 0:
        return value
    return math.floor(value / increment + 0.5) * increment


def increment_for_magnitude(
    weight: float,
    threshold: float = INCREMENT_MAGNITUDE_THRESHOLD,
    small: float = SMALL_WEIGHT_INCREMENT,
    large: float = LARGE_WEIGHT_INCREMENT,
) -> float:
    """
    Pick the weight step appropriate to the load.

    Light loads (<= threshold) move in small steps, heavier loads in large.

    Args:
        weight: Current working weight
        threshold: Magnitude at or below which the small step applies

    Returns:
        Increment in kg
    """
    return small if weight <= threshold else large


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def qualifying_sets(sets: Iterable[SetRecord]) -> list[SetRecord]:
    """Completed sets with a load (weight > 0)."""
    return [s for s in sets if s.completed and s.weight > 0]


def aggregate_sessions(sets: Iterable[SetRecord]) -> list[SessionAggregate]:
    """
    Aggregate completed weighted sets into one record per (exercise, date).

    Sets from several workouts on the same date merge into one session.

    Args:
        sets: Set records (any order, any completion state)

    Returns:
        SessionAggregate list sorted by date ascending
    """
    grouped: dict[tuple[str, str], list[SetRecord]] = {}
    for s in qualifying_sets(sets):
        grouped.setdefault((s.exercise_id, s.session_date), []).append(s)

    sessions: list[SessionAggregate] = []
    for (exercise_id, date), group in grouped.items():
        sessions.append(
            SessionAggregate(
                exercise_id=exercise_id,
                date=date,
                avg_weight=mean([s.weight for s in group]),
                max_weight=max(s.weight for s in group),
                avg_reps=mean([s.reps for s in group]),
                total_volume=sum(s.volume for s in group),
                set_count=len(group),
            )
        )

    sessions.sort(key=lambda a: (a.date, a.exercise_id))
    return sessions


def session_best_1rm(
    sets: Iterable[SetRecord],
    max_reps: int = BRZYCKI_MAX_REPS,
) -> list[tuple[str, float]]:
    """
    Best estimated 1RM per session date.

    Args:
        sets: Completed weighted sets of a single exercise

    Returns:
        List of (date, e1RM) sorted by date ascending
    """
    best: dict[str, float] = {}
    for s in sets:
        e1rm = brzycki_1rm(s.weight, s.reps, max_reps)
        if s.session_date not in best or e1rm > best[s.session_date]:
            best[s.session_date] = e1rm
    return sorted(best.items())


def volume_change_percent(latest: float, previous: float) -> float:
    """
    Percent change in session volume from previous to latest.

    A zero previous volume yields +100 when volume appeared and 0 otherwise.
    """
    if previous <= 0:
        return 100.0 if latest > 0 else 0.0
    return (latest - previous) / previous * 100


def classify_change(
    change: float,
    threshold: float,
) -> Trend:
    """
    Classify a signed change against a symmetric dead band.

    > +threshold → improving, < −threshold → declining, otherwise plateau.
    """
    if change > threshold:
        return "improving"
    if change < -threshold:
        return "declining"
    return "plateau"


def volume_trend(
    latest: SessionAggregate,
    previous: SessionAggregate,
    threshold_percent: float = VOLUME_TREND_PERCENT,
) -> Trend:
    """Trend between two adjacent sessions from their total volume."""
    return classify_change(
        volume_change_percent(latest.total_volume, previous.total_volume),
        threshold_percent,
    )


def slope_trend(slope: float, threshold: float = TREND_SLOPE_THRESHOLD) -> Trend:
    """Trend from a regression slope (e1RM kg per session)."""
    return classify_change(slope, threshold)


@dataclass(frozen=True)
class LinearFit:
    """Ordinary least squares fit y = intercept + slope·x."""

    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def linear_fit(values: Sequence[float]) -> LinearFit:
    """
    Fit y against its index 0..n−1 by ordinary least squares.

    R² = 1 − SS_res / SS_tot, forced to 0 when the series is flat
    (SS_tot == 0).

    Args:
        values: Observations in order

    Returns:
        LinearFit (slope, intercept, R²)
    """
    n = len(values)
    if n == 0:
        return LinearFit(0.0, 0.0, 0.0)
    if n == 1:
        return LinearFit(0.0, float(values[0]), 0.0)

    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(values)
    sum_xy = sum(x * y for x, y in zip(xs, values))
    sum_x2 = sum(x * x for x in xs)

    denominator = n * sum_x2 - sum_x**2
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    ss_total = sum((y - y_mean) ** 2 for y in values)
    ss_residual = sum((y - (slope * x + intercept)) ** 2 for x, y in zip(xs, values))
    r_squared = 1 - ss_residual / ss_total if ss_total > 0 else 0.0

    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared)
