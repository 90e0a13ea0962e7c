"""
Collaborator contracts consumed by the engine.

The engine owns no storage.  It reads completed-set history through a
SetHistoryProvider and upserts its small per-user state through the
repositories below.  io.history_store.EngineStore implements all of them;
any other backend only has to match these signatures.

Upserts must be idempotent and keyed as documented so that a
double-submitted workout completion leaves the same state behind
(last writer wins).
"""

from datetime import datetime
from typing import Protocol

from .models import (
    MuscleRecoveryState,
    PersonalRecord,
    PRPrediction,
    SetRecord,
    UnlockedAchievement,
    UserStats,
    Workout,
)


class SetHistoryProvider(Protocol):
    def load_workouts(self, user_id: str) -> list[Workout]:
        """All completed workouts for the user, date ascending."""
        ...

    def sets_for_exercise(
        self, user_id: str, exercise_id: str, since: str | None = None
    ) -> list[SetRecord]:
        """Completed sets of one exercise on or after ``since``, date ascending."""
        ...

    def exercises_trained_since(self, user_id: str, since: str) -> list[str]:
        """Distinct exercise ids with at least one completed set on or after ``since``."""
        ...


class RecoveryRepository(Protocol):
    def load_recovery(self, user_id: str) -> dict[str, MuscleRecoveryState]:
        """Stored recovery rows keyed by muscle group."""
        ...

    def upsert_recovery(self, user_id: str, state: MuscleRecoveryState) -> None:
        """Insert or replace the row keyed on (user_id, state.muscle_group)."""
        ...


class PredictionRepository(Protocol):
    def get_prediction(self, user_id: str, exercise_id: str) -> PRPrediction | None:
        ...

    def upsert_prediction(self, user_id: str, prediction: PRPrediction) -> None:
        """Insert or replace the row keyed on (user_id, prediction.exercise_id)."""
        ...


class StatsRepository(Protocol):
    def load_stats(self, user_id: str) -> UserStats | None:
        ...

    def save_stats(self, user_id: str, stats: UserStats) -> None:
        ...


class AchievementRepository(Protocol):
    def load_unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        ...

    def add_unlocked(self, user_id: str, achievement_id: str, unlocked_at: datetime) -> bool:
        """Record an unlock; return False if it was already recorded."""
        ...


class PersonalRecordRepository(Protocol):
    def best_record(self, user_id: str, exercise_id: str) -> PersonalRecord | None:
        ...

    def add_record(self, user_id: str, record: PersonalRecord) -> None:
        ...
