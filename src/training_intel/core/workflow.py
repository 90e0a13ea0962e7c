"""
Wiring of the four analytical components around one store.

``TrainingEngine.complete_workout`` is the "workout completed" event
handler: detect PRs, refresh muscle recovery, add the workout to lifetime
stats and unlock any achievements now earned.  Overload suggestions and PR
forecasts are pulled on demand through the other attributes.
"""

import logging
from datetime import date, datetime

from .achievements import AchievementEngine
from .config import EngineConfig, load_engine_config
from .forecast import StrengthTrendForecaster
from .models import AchievementDefinition, CompletionReport, Workout, WorkoutSummary
from .overload import ProgressiveOverloadAnalyzer
from .records import detect_personal_records
from .recovery import MuscleRecoveryTracker

logger = logging.getLogger(__name__)


def summarize_workout(workout: Workout, prs: int = 0) -> WorkoutSummary:
    """Totals over the workout's completed sets (weighted or not)."""
    completed = workout.completed_sets()
    return WorkoutSummary(
        sets=len(completed),
        reps=sum(s.reps for s in completed),
        weight=sum(s.volume for s in completed),
        prs=prs,
        duration=workout.duration_minutes or 0,
    )


class TrainingEngine:
    """
    The four engine components sharing one store and one config.

    ``store`` must implement every protocol in core.interfaces
    (io.history_store.EngineStore does).
    """

    def __init__(
        self,
        store,
        config: EngineConfig | None = None,
        catalog: list[AchievementDefinition] | None = None,
    ):
        config = config or load_engine_config()
        self.store = store
        self.recovery = MuscleRecoveryTracker(store, config)
        self.overload = ProgressiveOverloadAnalyzer(store, config)
        self.forecaster = StrengthTrendForecaster(store, store, store, config)
        self.achievements = AchievementEngine(store, store, catalog, config)

    def complete_workout(
        self,
        user_id: str,
        workout: Workout,
        now: datetime | None = None,
    ) -> CompletionReport:
        """
        Handle a completed workout that is already in the user's history.

        Args:
            user_id: Owner of the workout
            workout: The completed workout
            now: Completion instant; defaults to workout.completed_at, then the clock

        Returns:
            CompletionReport with new PRs, updated stats and unlocked achievement names
        """
        now = now or workout.completed_at or datetime.now()

        new_records = detect_personal_records(user_id, workout, self.store)
        recovered = self.recovery.update(user_id, workout, now)

        summary = summarize_workout(workout, prs=len(new_records))
        stats = self.achievements.record_workout(user_id, summary, date.fromisoformat(workout.date))
        unlocked = self.achievements.check_and_unlock_achievements(user_id, now)

        logger.info(
            "Completed workout %s for %s: %d sets, %d PRs, %d unlocks",
            workout.workout_id, user_id, summary.sets, summary.prs, len(unlocked),
        )
        return CompletionReport(
            workout_id=workout.workout_id,
            summary=summary,
            new_records=new_records,
            stats=self.achievements.stats.load_stats(user_id) or stats,
            unlocked=unlocked,
            recovery_updated=[s.muscle_group for s in recovered],
        )
