"""
Strength trend forecasting and PR readiness.

Fits a least-squares line through the per-session best estimated 1RM of an
exercise and projects one session ahead.  Predictions are cached per
(user, exercise) and reused until they expire; an expired entry is
recomputed synchronously on the next read.
"""

import logging
from datetime import datetime, timedelta

from .config import EngineConfig, ForecastConfig, load_engine_config
from .interfaces import PersonalRecordRepository, PredictionRepository, SetHistoryProvider
from .metrics import clamp, linear_fit, qualifying_sets, round_to_increment, session_best_1rm, slope_trend
from .models import PRPrediction, SetRecord

logger = logging.getLogger(__name__)


def is_stale(prediction: PRPrediction, now: datetime) -> bool:
    """True once the cached prediction has expired or was computed after ``now``."""
    return now >= prediction.expires_at or now < prediction.computed_at


def compute_prediction(
    exercise_id: str,
    sets: list[SetRecord],
    now: datetime,
    config: ForecastConfig,
) -> PRPrediction | None:
    """
    Forecast the next session's estimated 1RM from completed weighted sets.

    Requires ``min_sets`` raw sets and ``min_sessions`` distinct session dates;
    otherwise returns None.

    Sessions are indexed 0..n−1 in date order; predicted max is the fitted
    value at index n.  Ready for a PR when the trend is improving, R² clears
    ``min_r_squared`` and the prediction beats the current max by
    ``pr_margin``.

    Args:
        exercise_id: Exercise the sets belong to
        sets: Completed sets with weight > 0
        now: Computation instant (sets computed_at / expires_at)
        config: Forecast tunables

    Returns:
        PRPrediction or None when data is insufficient
    """
    if len(sets) < config.min_sets:
        return None

    sessions = session_best_1rm(sets, config.max_reps)
    if len(sessions) < config.min_sessions:
        return None

    values = [e1rm for _, e1rm in sessions]
    n = len(values)
    fit = linear_fit(values)

    current_max = values[-1]
    predicted_max = fit.predict(n)
    trend = slope_trend(fit.slope, config.slope_threshold)
    ready = (
        trend == "improving"
        and fit.r_squared > config.min_r_squared
        and predicted_max > current_max * config.pr_margin
    )

    return PRPrediction(
        exercise_id=exercise_id,
        current_max=round(current_max, 1),
        predicted_max=round(predicted_max, 1),
        suggested_weight=round_to_increment(current_max * config.weight_factor, config.weight_rounding),
        confidence=round(clamp(fit.r_squared, 0.0, 1.0), 2),
        trend=trend,
        ready_for_pr=ready,
        data_points=n,
        computed_at=now,
        expires_at=now + timedelta(hours=config.ttl_hours),
    )


def sort_predictions(predictions: list[PRPrediction]) -> list[PRPrediction]:
    """Ready-for-PR first, then by descending confidence."""
    return sorted(predictions, key=lambda p: (not p.ready_for_pr, -p.confidence))


class StrengthTrendForecaster:
    """PR predictor with a read-time TTL cache."""

    def __init__(
        self,
        history: SetHistoryProvider,
        cache: PredictionRepository,
        records: PersonalRecordRepository | None = None,
        config: EngineConfig | None = None,
    ):
        self.history = history
        self.cache = cache
        self.records = records
        self.config = (config or load_engine_config()).forecast

    def _since(self, now: datetime) -> str:
        return (now.date() - timedelta(days=self.config.lookback_days)).isoformat()

    def predict(
        self,
        user_id: str,
        exercise_id: str,
        now: datetime | None = None,
    ) -> PRPrediction | None:
        """
        Cached prediction for one exercise, recomputed when missing or stale.

        Returns None when the exercise lacks enough recent data.
        """
        now = now or datetime.now()

        cached = self.cache.get_prediction(user_id, exercise_id)
        if cached is not None and not is_stale(cached, now):
            return cached

        sets = qualifying_sets(self.history.sets_for_exercise(user_id, exercise_id, self._since(now)))
        prediction = compute_prediction(exercise_id, sets, now, self.config)
        if prediction is None:
            logger.debug("No forecast for %s/%s: %d qualifying sets", user_id, exercise_id, len(sets))
            return None

        if self.records is not None:
            best = self.records.best_record(user_id, exercise_id)
            prediction.current_pr = best.value if best is not None else None

        self.cache.upsert_prediction(user_id, prediction)
        logger.info(
            "Recomputed forecast for %s/%s: %.1f -> %.1f (R²=%.2f)",
            user_id, exercise_id, prediction.current_max,
            prediction.predicted_max, prediction.confidence,
        )
        return prediction

    def predict_all(self, user_id: str, now: datetime | None = None) -> list[PRPrediction]:
        """Predictions for every exercise trained in the lookback window, sorted."""
        now = now or datetime.now()
        predictions = []
        for exercise_id in self.history.exercises_trained_since(user_id, self._since(now)):
            prediction = self.predict(user_id, exercise_id, now)
            if prediction is not None:
                predictions.append(prediction)
        return sort_predictions(predictions)
