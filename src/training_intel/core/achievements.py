"""
Lifetime stats, streaks, XP levels and achievement unlocks.

XP curve: reaching level L+1 needs scale × L^exponent total XP, so with the
default exponent 2 and scale 100 the level is floor(sqrt(xp / 100)) + 1.
"""

import logging
from datetime import date, datetime
from typing import Callable

from .config import EngineConfig, LevelConfig, load_engine_config
from .engine.config_loader import ACHIEVEMENTS_FILE, load_yaml_layers
from .interfaces import AchievementRepository, StatsRepository
from .models import (
    AchievementDefinition,
    AchievementRequirement,
    AchievementStatus,
    LevelProfile,
    UserStats,
    WorkoutSummary,
)

logger = logging.getLogger(__name__)

# =============================================================================
# LEVEL HELPERS
# =============================================================================


def xp_for_next_level(level: int, config: LevelConfig | None = None) -> int:
    """Total XP at which ``level`` is completed: level^exponent × scale."""
    config = config or LevelConfig()
    if level <= 0:
        return 0
    return int(round(level ** config.exponent * config.scale))


def calculate_level(xp: float, config: LevelConfig | None = None) -> int:
    """
    Level for a total XP amount.

    floor((xp / scale)^(1/exponent)) + 1, corrected against the integer
    thresholds so float error never shifts a boundary.
    """
    config = config or LevelConfig()
    if xp <= 0:
        return 1
    level = int((xp / config.scale) ** (1 / config.exponent)) + 1
    while xp >= xp_for_next_level(level, config):
        level += 1
    while level > 1 and xp < xp_for_next_level(level - 1, config):
        level -= 1
    return level


def xp_progress(total_xp: float, level: int, config: LevelConfig | None = None) -> float:
    """
    Percent of the way through ``level``, capped at 100.

    Args:
        total_xp: Lifetime XP
        level: Current level

    Returns:
        Progress percent in [0, 100]
    """
    config = config or LevelConfig()
    floor_xp = xp_for_next_level(level - 1, config)
    ceiling_xp = xp_for_next_level(level, config)
    span = ceiling_xp - floor_xp
    if span <= 0:
        return 100.0
    return max(0.0, min(100.0, (total_xp - floor_xp) / span * 100))


def level_title(level: int, config: LevelConfig | None = None) -> str:
    """Beginner 1-10, Intermediate 11-25, Advanced 26-50, Elite 51-75, Legend 76+."""
    config = config or LevelConfig()
    for top, title in config.titles:
        if level <= top:
            return title
    return config.top_title


# =============================================================================
# STREAKS
# =============================================================================


def next_streak(current_streak: int, last_workout_date: str | None, today: date) -> int:
    """
    Streak after a workout on ``today``.

    Same calendar day: unchanged.  Exactly one day later: +1.  Any larger
    gap (or no previous workout): reset to 1.  A backdated workout (before
    the last one) leaves the streak unchanged.
    """
    if last_workout_date is None:
        return 1
    days = (today - date.fromisoformat(last_workout_date)).days
    if days <= 0:
        return current_streak
    if days == 1:
        return current_streak + 1
    return 1


# =============================================================================
# REQUIREMENTS
# =============================================================================

REQUIREMENT_CHECKS: dict[str, Callable[[UserStats, float], bool]] = {
    "workout_count": lambda s, t: s.total_workouts >= t,
    "pr_count": lambda s, t: s.total_prs >= t,
    "streak": lambda s, t: s.current_streak >= t or s.longest_streak >= t,
    "total_weight": lambda s, t: s.total_weight >= t,
    "total_reps": lambda s, t: s.total_reps >= t,
    "total_sets": lambda s, t: s.total_sets >= t,
}


def requirement_met(requirement: AchievementRequirement, stats: UserStats) -> bool:
    """Evaluate a requirement; unknown types never unlock."""
    check = REQUIREMENT_CHECKS.get(requirement.type)
    if check is None:
        return False
    return check(stats, requirement.threshold)


def _definition_from_dict(achievement_id: str, data: dict) -> AchievementDefinition:
    req = data["requirement"]
    return AchievementDefinition(
        achievement_id=achievement_id,
        name=str(data["name"]),
        requirement=AchievementRequirement(type=str(req["type"]), threshold=float(req["threshold"])),
        xp_reward=int(data["xp_reward"]),
        rarity=data.get("rarity", "common"),
        description=str(data.get("description", "")),
        category=str(data.get("category", "general")),
        is_secret=bool(data.get("is_secret", False)),
    )


def load_achievement_catalog() -> list[AchievementDefinition]:
    """
    Achievement definitions from achievements.yaml (bundled + user override).

    Raises:
        ValueError: If a definition is missing a required field
    """
    raw = load_yaml_layers(ACHIEVEMENTS_FILE).get("achievements") or {}
    catalog = []
    for achievement_id, data in raw.items():
        try:
            catalog.append(_definition_from_dict(str(achievement_id), data))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid achievement definition '{achievement_id}': {e}") from e
    return catalog


# =============================================================================
# ENGINE
# =============================================================================


class AchievementEngine:
    """Owns a user's UserStats row and their achievement unlocks."""

    def __init__(
        self,
        stats: StatsRepository,
        unlocks: AchievementRepository,
        catalog: list[AchievementDefinition] | None = None,
        config: EngineConfig | None = None,
    ):
        self.stats = stats
        self.unlocks = unlocks
        self.catalog = catalog if catalog is not None else load_achievement_catalog()
        self.config = (config or load_engine_config()).levels

    def record_workout(
        self,
        user_id: str,
        summary: WorkoutSummary,
        today: date | None = None,
    ) -> UserStats:
        """
        Add one completed workout to the user's lifetime stats.

        The first workout creates the row with both streaks at 1.

        Returns:
            Updated UserStats
        """
        today = today or date.today()
        stats = self.stats.load_stats(user_id)

        if stats is None:
            stats = UserStats(
                total_workouts=1,
                total_sets=summary.sets,
                total_reps=summary.reps,
                total_weight=summary.weight,
                total_prs=summary.prs,
                total_duration=summary.duration,
                current_streak=1,
                longest_streak=1,
                last_workout_date=today.isoformat(),
            )
        else:
            stats.current_streak = next_streak(stats.current_streak, stats.last_workout_date, today)
            stats.longest_streak = max(stats.longest_streak, stats.current_streak)
            stats.total_workouts += 1
            stats.total_sets += summary.sets
            stats.total_reps += summary.reps
            stats.total_weight += summary.weight
            stats.total_prs += summary.prs
            stats.total_duration += summary.duration
            stats.last_workout_date = max(stats.last_workout_date or "", today.isoformat())

        self.stats.save_stats(user_id, stats)
        return stats

    def check_and_unlock_achievements(
        self,
        user_id: str,
        now: datetime | None = None,
    ) -> list[str]:
        """
        Unlock every locked achievement whose requirement the stats now meet.

        Each unlock adds its XP reward and recomputes the level.

        Returns:
            Names of newly unlocked achievements, catalog order
        """
        now = now or datetime.now()
        stats = self.stats.load_stats(user_id) or UserStats()
        unlocked_ids = {u.achievement_id for u in self.unlocks.load_unlocked(user_id)}

        newly_unlocked: list[str] = []
        for definition in self.catalog:
            if definition.achievement_id in unlocked_ids:
                continue
            if not requirement_met(definition.requirement, stats):
                continue
            if not self.unlocks.add_unlocked(user_id, definition.achievement_id, now):
                continue
            stats.total_xp += definition.xp_reward
            stats.current_level = calculate_level(stats.total_xp, self.config)
            newly_unlocked.append(definition.name)
            logger.info(
                "User %s unlocked %s (+%d XP, level %d)",
                user_id, definition.name, definition.xp_reward, stats.current_level,
            )

        self.stats.save_stats(user_id, stats)
        return newly_unlocked

    def list_achievements(self, user_id: str) -> list[AchievementStatus]:
        """All achievements with unlock state; locked secret ones are hidden."""
        unlocked = {u.achievement_id: u.unlocked_at for u in self.unlocks.load_unlocked(user_id)}
        statuses = [
            AchievementStatus(
                definition=d,
                is_unlocked=d.achievement_id in unlocked,
                unlocked_at=unlocked.get(d.achievement_id),
            )
            for d in self.catalog
        ]
        return [s for s in statuses if s.is_unlocked or not s.definition.is_secret]

    def profile(self, user_id: str, recent: int = 5) -> LevelProfile:
        """Stats with level, title, XP progress and achievement completion."""
        stats = self.stats.load_stats(user_id) or UserStats()
        level = calculate_level(stats.total_xp, self.config)

        unlocked = [s for s in self.list_achievements(user_id) if s.is_unlocked]
        unlocked.sort(key=lambda s: s.unlocked_at, reverse=True)
        total = len(self.catalog)

        return LevelProfile(
            stats=stats,
            level=level,
            level_title=level_title(level, self.config),
            xp_progress=round(xp_progress(stats.total_xp, level, self.config), 1),
            xp_for_next_level=xp_for_next_level(level, self.config),
            achievements_unlocked=len(unlocked),
            achievements_total=total,
            achievements_percent=round(len(unlocked) / total * 100) if total else 0,
            recent_achievements=unlocked[:recent],
        )
