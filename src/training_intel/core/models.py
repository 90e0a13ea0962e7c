"""
Data models for training-intel.

Dataclasses for the completed-set history the engine reads and the plain
result records it emits.  Session dates are ISO "YYYY-MM-DD" strings;
instants (last trained, cache expiry, unlock time) are naive datetimes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

RecoveryStatus = Literal["recovered", "recovering", "fatigued"]
Confidence = Literal["high", "medium", "low"]
Trend = Literal["improving", "plateau", "declining"]
RequirementType = Literal[
    "workout_count",
    "pr_count",
    "streak",
    "total_weight",
    "total_reps",
    "total_sets",
]
Rarity = Literal["common", "uncommon", "rare", "epic", "legendary"]


# =============================================================================
# HISTORY (input)
# =============================================================================


@dataclass
class SetRecord:
    """A single logged set of one exercise."""

    exercise_id: str
    session_date: str
    weight: float
    reps: int
    completed: bool = True

    def __post_init__(self) -> None:
        """Validate set data."""
        if self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps < 0:
            raise ValueError("reps must be non-negative")

    @property
    def volume(self) -> float:
        return self.weight * self.reps


@dataclass
class WorkoutExercise:
    """One exercise performed within a workout, with its sets."""

    exercise_id: str
    muscle_group: str
    sets: list[SetRecord] = field(default_factory=list)

    def completed_sets(self) -> list[SetRecord]:
        return [s for s in self.sets if s.completed]


@dataclass
class Workout:
    """
    A completed workout.

    completed_at is the instant the workout was marked complete; it is
    optional for imported history and defaults to midnight of ``date``.
    """

    workout_id: str
    date: str
    exercises: list[WorkoutExercise] = field(default_factory=list)
    duration_minutes: int | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate workout data."""
        if self.duration_minutes is not None and self.duration_minutes < 0:
            raise ValueError("duration_minutes must be non-negative")

    def all_sets(self) -> list[SetRecord]:
        return [s for ex in self.exercises for s in ex.sets]

    def completed_sets(self) -> list[SetRecord]:
        return [s for ex in self.exercises for s in ex.completed_sets()]


@dataclass(frozen=True)
class SessionAggregate:
    """Per-exercise, per-date aggregate over completed weighted sets (derived)."""

    exercise_id: str
    date: str
    avg_weight: float
    max_weight: float
    avg_reps: float
    total_volume: float
    set_count: int


# =============================================================================
# MUSCLE RECOVERY
# =============================================================================


@dataclass
class MuscleRecoveryState:
    """Stored recovery state for one (user, muscle group)."""

    muscle_group: str
    last_trained_at: datetime
    total_sets: int
    total_volume: float
    recovery_hours: float

    def __post_init__(self) -> None:
        """Validate recovery state."""
        if self.total_sets < 0:
            raise ValueError("total_sets must be non-negative")
        if self.recovery_hours <= 0:
            raise ValueError("recovery_hours must be positive")


@dataclass(frozen=True)
class MuscleStatus:
    """Read-time view of a muscle group's recovery."""

    muscle_group: str
    last_trained_at: datetime | None
    total_sets: int
    total_volume: float
    recovery_hours: float
    hours_remaining: int
    recovery_percent: int
    status: RecoveryStatus
    ready_to_train: bool


@dataclass(frozen=True)
class RecoverySummary:
    """All tracked muscle statuses plus the derived overview figures."""

    muscles: list[MuscleStatus]
    suggested_muscles: list[str]
    overall_recovery: int
    ready_count: int


# =============================================================================
# PROGRESSION AND FORECASTS
# =============================================================================


@dataclass(frozen=True)
class ProgressionSuggestion:
    """Weight adjustment suggested for one exercise."""

    exercise_id: str
    current_weight: float
    suggested_weight: float
    confidence: Confidence
    reason: str
    trend: Trend
    last_performed: str


@dataclass
class PRPrediction:
    """
    Forecast of the next estimated 1RM for one exercise.

    Cached per (user, exercise); valid until expires_at.
    """

    exercise_id: str
    current_max: float
    predicted_max: float
    suggested_weight: float
    confidence: float
    trend: Trend
    ready_for_pr: bool
    data_points: int
    computed_at: datetime
    expires_at: datetime
    current_pr: float | None = None

    def __post_init__(self) -> None:
        """Validate prediction fields."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")
        if self.data_points < 0:
            raise ValueError("data_points must be non-negative")


@dataclass(frozen=True)
class PersonalRecord:
    """A best estimated 1RM for an exercise, set on a given date."""

    exercise_id: str
    value: float  # estimated 1RM, kg
    weight: float
    reps: int
    date: str


# =============================================================================
# STATS AND ACHIEVEMENTS
# =============================================================================


@dataclass
class UserStats:
    """Lifetime totals, streaks and XP for one user."""

    total_workouts: int = 0
    total_sets: int = 0
    total_reps: int = 0
    total_weight: float = 0.0
    total_prs: int = 0
    total_duration: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_workout_date: str | None = None
    total_xp: int = 0
    current_level: int = 1


@dataclass(frozen=True)
class WorkoutSummary:
    """Totals of one completed workout, fed to AchievementEngine.record_workout."""

    sets: int
    reps: int
    weight: float
    prs: int = 0
    duration: int = 0

    def __post_init__(self) -> None:
        """Validate summary totals."""
        for name in ("sets", "reps", "weight", "prs", "duration"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class AchievementRequirement:
    """Unlock condition: stats metric ``type`` must reach ``threshold``."""

    type: str
    threshold: float


@dataclass(frozen=True)
class AchievementDefinition:
    """A one-time achievement users can unlock."""

    achievement_id: str
    name: str
    requirement: AchievementRequirement
    xp_reward: int
    rarity: Rarity = "common"
    description: str = ""
    category: str = "general"
    is_secret: bool = False


@dataclass(frozen=True)
class UnlockedAchievement:
    """Record of a user unlocking an achievement."""

    achievement_id: str
    user_id: str
    unlocked_at: datetime


@dataclass(frozen=True)
class AchievementStatus:
    """An achievement definition joined with the user's unlock state."""

    definition: AchievementDefinition
    is_unlocked: bool
    unlocked_at: datetime | None


@dataclass(frozen=True)
class LevelProfile:
    """Stats plus level/title/XP progress and achievement completion."""

    stats: UserStats
    level: int
    level_title: str
    xp_progress: float
    xp_for_next_level: int
    achievements_unlocked: int
    achievements_total: int
    achievements_percent: int
    recent_achievements: list[AchievementStatus]


@dataclass(frozen=True)
class CompletionReport:
    """Everything produced by handling one "workout completed" event."""

    workout_id: str
    summary: WorkoutSummary
    new_records: list[PersonalRecord]
    stats: UserStats
    unlocked: list[str]
    recovery_updated: list[str]
