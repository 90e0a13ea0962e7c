"""
Progressive overload analysis.

Looks at the most recent sessions of an exercise and decides whether the
lifter should add weight, deload, or hold and chase reps.  The decision is an
ordered table of (predicate, outcome) rules evaluated top-down; the first
matching rule wins and no match means no suggestion.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable

from .config import EngineConfig, OverloadConfig, load_engine_config
from .interfaces import SetHistoryProvider
from .metrics import (
    aggregate_sessions,
    increment_for_magnitude,
    mean,
    round_half_up,
    round_to_increment,
    volume_trend,
)
from .models import Confidence, ProgressionSuggestion, SessionAggregate, Trend

logger = logging.getLogger(__name__)

CONFIDENCE_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}


@dataclass(frozen=True)
class OverloadContext:
    """Inputs every overload rule sees."""

    latest: SessionAggregate
    trend: Trend
    avg_reps_recent: float
    config: OverloadConfig


@dataclass(frozen=True)
class OverloadOutcome:
    suggested_weight: float
    confidence: Confidence
    reason: str


@dataclass(frozen=True)
class OverloadRule:
    """One row of the decision table."""

    name: str
    applies: Callable[[OverloadContext], bool]
    outcome: Callable[[OverloadContext], OverloadOutcome]


def _increase(ctx: OverloadContext) -> OverloadOutcome:
    cfg = ctx.config
    step = increment_for_magnitude(
        ctx.latest.max_weight, cfg.increment_threshold, cfg.small_increment, cfg.large_increment
    )
    return OverloadOutcome(
        suggested_weight=ctx.latest.max_weight + step,
        confidence="high" if ctx.avg_reps_recent >= cfg.reps_high_confidence else "medium",
        reason=f"Averaging {round_half_up(ctx.avg_reps_recent)} reps: ready to increase weight",
    )


def _deload(ctx: OverloadContext) -> OverloadOutcome:
    cfg = ctx.config
    w = ctx.latest.max_weight
    target = max(w - cfg.deload_absolute_kg, w * cfg.deload_fraction)
    return OverloadOutcome(
        suggested_weight=round_to_increment(target, cfg.deload_rounding),
        confidence="medium",
        reason="Consider a slight deload to improve form and reps",
    )


def _hold(ctx: OverloadContext) -> OverloadOutcome:
    return OverloadOutcome(
        suggested_weight=ctx.latest.max_weight,
        confidence="medium",
        reason="Focus on adding reps before increasing weight",
    )


OVERLOAD_RULES: list[OverloadRule] = [
    OverloadRule(
        name="increase",
        applies=lambda c: c.avg_reps_recent >= c.config.reps_increase and c.trend != "declining",
        outcome=_increase,
    ),
    OverloadRule(
        name="deload",
        applies=lambda c: c.avg_reps_recent < c.config.reps_deload and c.trend == "declining",
        outcome=_deload,
    ),
    OverloadRule(
        name="plateau",
        applies=lambda c: c.trend == "plateau",
        outcome=_hold,
    ),
]


def evaluate_rules(
    ctx: OverloadContext,
    rules: list[OverloadRule] = OVERLOAD_RULES,
) -> OverloadOutcome | None:
    """Return the outcome of the first rule that applies, or None."""
    for rule in rules:
        if rule.applies(ctx):
            logger.debug("Overload rule %s matched for %s", rule.name, ctx.latest.exercise_id)
            return rule.outcome(ctx)
    return None


def analyze_sessions(
    sessions: list[SessionAggregate],
    config: OverloadConfig,
    rules: list[OverloadRule] = OVERLOAD_RULES,
) -> ProgressionSuggestion | None:
    """
    Suggest a weight change from date-ascending session aggregates.

    Uses the latest ``session_window`` sessions; fewer than ``min_sessions``
    yields no suggestion.

    Args:
        sessions: Qualifying sessions of one exercise, oldest first
        config: Overload tunables
        rules: Decision table

    Returns:
        ProgressionSuggestion or None
    """
    window = sessions[-config.session_window:]
    if len(window) < config.min_sessions:
        return None

    latest, previous = window[-1], window[-2]
    recent = window[-config.recent_sessions:]
    ctx = OverloadContext(
        latest=latest,
        trend=volume_trend(latest, previous, config.volume_trend_percent),
        avg_reps_recent=mean([s.avg_reps for s in recent]),
        config=config,
    )

    outcome = evaluate_rules(ctx, rules)
    if outcome is None:
        return None

    return ProgressionSuggestion(
        exercise_id=latest.exercise_id,
        current_weight=latest.max_weight,
        suggested_weight=outcome.suggested_weight,
        confidence=outcome.confidence,
        reason=outcome.reason,
        trend=ctx.trend,
        last_performed=latest.date,
    )


def sort_suggestions(suggestions: list[ProgressionSuggestion]) -> list[ProgressionSuggestion]:
    """Weight increases first, then high > medium > low confidence."""
    return sorted(
        suggestions,
        key=lambda s: (
            s.suggested_weight <= s.current_weight,
            CONFIDENCE_ORDER[s.confidence],
        ),
    )


class ProgressiveOverloadAnalyzer:
    """Per-exercise weight adjustment suggestions from recent session trend."""

    def __init__(
        self,
        history: SetHistoryProvider,
        config: EngineConfig | None = None,
        rules: list[OverloadRule] | None = None,
    ):
        self.history = history
        self.config = (config or load_engine_config()).overload
        self.rules = rules if rules is not None else OVERLOAD_RULES

    def suggest(self, user_id: str, exercise_id: str) -> ProgressionSuggestion | None:
        """Suggestion for one exercise, or None when data is insufficient or no rule fires."""
        sets = self.history.sets_for_exercise(user_id, exercise_id)
        sessions = aggregate_sessions(sets)
        if len(sessions) < self.config.min_sessions:
            logger.debug(
                "Skipping overload for %s/%s: %d qualifying sessions",
                user_id, exercise_id, len(sessions),
            )
            return None
        return analyze_sessions(sessions, self.config, self.rules)

    def get_all_suggestions(
        self,
        user_id: str,
        today: date | None = None,
    ) -> list[ProgressionSuggestion]:
        """Suggestions for every exercise trained in the lookback window, sorted."""
        today = today or date.today()
        since = (today - timedelta(days=self.config.lookback_days)).isoformat()

        suggestions = []
        for exercise_id in self.history.exercises_trained_since(user_id, since):
            suggestion = self.suggest(user_id, exercise_id)
            if suggestion is not None:
                suggestions.append(suggestion)

        return sort_suggestions(suggestions)
