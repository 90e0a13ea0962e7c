"""
Muscle recovery tracking.

Each workout completion replaces the stored load for every muscle group it
trained; reads derive how far through its recovery window each group is.
A group with no stored state has never been trained and is reported fully
recovered.

Recovery counts every completed set, weighted or not: exertion matters here,
not load.  The overload analyzer and trend forecaster additionally require
weight > 0.
"""

import logging
from datetime import datetime

from .config import EngineConfig, RecoveryConfig, load_engine_config
from .interfaces import RecoveryRepository
from .metrics import round_half_up
from .models import MuscleRecoveryState, MuscleStatus, RecoveryStatus, RecoverySummary, Workout

logger = logging.getLogger(__name__)


def recovery_hours_for(muscle_group: str, total_sets: int, config: RecoveryConfig) -> float:
    """
    Recovery window for a muscle group after a session of ``total_sets`` sets.

    base + 24 h at >= 20 sets, + 12 h at >= 15, base at >= 10, base − 12 h below.

    Args:
        muscle_group: Muscle group name
        total_sets: Completed sets for that group in the session
        config: Recovery tunables

    Returns:
        Recovery window in hours
    """
    base = config.base_hours.get(muscle_group, config.default_hours)
    for min_sets, extra_hours in config.volume_adjustments:
        if total_sets >= min_sets:
            return base + extra_hours
    return base


def classify_recovery(percent: float, config: RecoveryConfig) -> RecoveryStatus:
    """recovered at >= 100 %, recovering at >= 50 %, otherwise fatigued."""
    if percent >= config.recovered_percent:
        return "recovered"
    if percent >= config.recovering_percent:
        return "recovering"
    return "fatigued"


def muscle_status(
    state: MuscleRecoveryState | None,
    muscle_group: str,
    now: datetime,
    config: RecoveryConfig,
) -> MuscleStatus:
    """
    Derive the read-time status of one muscle group.

    Status and readiness use the unrounded percent; only the reported
    percent and hours remaining are rounded.
    """
    if state is None:
        return MuscleStatus(
            muscle_group=muscle_group,
            last_trained_at=None,
            total_sets=0,
            total_volume=0.0,
            recovery_hours=0.0,
            hours_remaining=0,
            recovery_percent=100,
            status="recovered",
            ready_to_train=True,
        )

    hours_since = max(0.0, (now - state.last_trained_at).total_seconds() / 3600)
    percent = min(100.0, hours_since / state.recovery_hours * 100)
    recovery_percent = round_half_up(percent)
    hours_remaining = round_half_up(max(0.0, state.recovery_hours - hours_since))

    return MuscleStatus(
        muscle_group=muscle_group,
        last_trained_at=state.last_trained_at,
        total_sets=state.total_sets,
        total_volume=state.total_volume,
        recovery_hours=state.recovery_hours,
        hours_remaining=hours_remaining,
        recovery_percent=recovery_percent,
        status=classify_recovery(percent, config),
        ready_to_train=percent >= config.ready_percent,
    )


def get_suggested_muscles(statuses: list[MuscleStatus]) -> list[str]:
    """
    Muscle groups ready to train, fully recovered first, then by percent.

    Args:
        statuses: Output of MuscleRecoveryTracker.get_status

    Returns:
        Muscle group names in suggested training order
    """
    ready = [s for s in statuses if s.ready_to_train]
    ready.sort(key=lambda s: (s.recovery_percent < 100, -s.recovery_percent))
    return [s.muscle_group for s in ready]


class MuscleRecoveryTracker:
    """Maintains per-(user, muscle group) fatigue state."""

    def __init__(self, repository: RecoveryRepository, config: EngineConfig | None = None):
        self.repository = repository
        self.config = (config or load_engine_config()).recovery

    def update(
        self,
        user_id: str,
        workout: Workout,
        now: datetime | None = None,
    ) -> list[MuscleRecoveryState]:
        """
        Replace recovery state for every muscle group the workout trained.

        Totals reflect this session only; they do not accumulate across
        sessions.  Groups with no completed sets are left untouched.

        Args:
            user_id: Owner of the workout
            workout: The completed workout
            now: Completion instant (defaults to the current time)

        Returns:
            The upserted states
        """
        now = now or datetime.now()

        per_group: dict[str, tuple[int, float]] = {}
        for exercise in workout.exercises:
            for s in exercise.completed_sets():
                sets, volume = per_group.get(exercise.muscle_group, (0, 0.0))
                per_group[exercise.muscle_group] = (sets + 1, volume + s.volume)

        updated: list[MuscleRecoveryState] = []
        for muscle_group, (sets, volume) in per_group.items():
            state = MuscleRecoveryState(
                muscle_group=muscle_group,
                last_trained_at=now,
                total_sets=sets,
                total_volume=volume,
                recovery_hours=recovery_hours_for(muscle_group, sets, self.config),
            )
            self.repository.upsert_recovery(user_id, state)
            logger.info(
                "Recovery for %s/%s: %d sets, %.0f h window",
                user_id, muscle_group, sets, state.recovery_hours,
            )
            updated.append(state)

        return updated

    def get_status(self, user_id: str, now: datetime | None = None) -> list[MuscleStatus]:
        """Status of every tracked muscle group; untrained groups read as recovered."""
        now = now or datetime.now()
        stored = self.repository.load_recovery(user_id)
        return [
            muscle_status(stored.get(group), group, now, self.config)
            for group in self.config.tracked_groups
        ]

    def get_suggested_muscles(self, statuses: list[MuscleStatus]) -> list[str]:
        return get_suggested_muscles(statuses)

    def summary(self, user_id: str, now: datetime | None = None) -> RecoverySummary:
        """Statuses plus suggested muscles, overall recovery and ready count."""
        statuses = self.get_status(user_id, now)
        overall = round_half_up(sum(s.recovery_percent for s in statuses) / len(statuses)) if statuses else 100
        return RecoverySummary(
            muscles=statuses,
            suggested_muscles=get_suggested_muscles(statuses),
            overall_recovery=overall,
            ready_count=sum(1 for s in statuses if s.ready_to_train),
        )
