"""
Configuration constants for the training intelligence engine.

All adjustable parameters are centralized here for easy tuning. The
module-level constants are the Python defaults; ``load_engine_config()``
overlays values from engine.yaml (bundled and user override) so thresholds
can be changed for experiments without touching code.
"""

from dataclasses import dataclass, field
from typing import Any, Final

# =============================================================================
# MUSCLE RECOVERY
# =============================================================================

BASE_RECOVERY_HOURS: Final[dict[str, float]] = {
    "chest": 48,
    "back": 72,
    "shoulders": 48,
    "biceps": 48,
    "triceps": 48,
    "legs": 72,
    "core": 24,
    "cardio": 24,
    "full_body": 48,
}
DEFAULT_RECOVERY_HOURS: Final[float] = 48  # Unknown muscle group

# (min completed sets, hours added to base), checked top-down; first match wins
VOLUME_RECOVERY_ADJUSTMENTS: Final[list[tuple[int, float]]] = [
    (20, 24),
    (15, 12),
    (10, 0),
    (0, -12),  # Light session recovers faster
]

# Groups reported by get_status(); untrained ones are reported recovered
TRACKED_MUSCLE_GROUPS: Final[list[str]] = [
    "chest",
    "back",
    "shoulders",
    "biceps",
    "triceps",
    "legs",
    "core",
]

RECOVERED_PERCENT: Final[float] = 100.0
RECOVERING_PERCENT: Final[float] = 50.0
READY_TO_TRAIN_PERCENT: Final[float] = 80.0

# =============================================================================
# PROGRESSIVE OVERLOAD
# =============================================================================

OVERLOAD_SESSION_WINDOW: Final[int] = 5  # Most recent qualifying sessions
OVERLOAD_MIN_SESSIONS: Final[int] = 2
OVERLOAD_RECENT_SESSIONS: Final[int] = 3  # Sessions averaged for avgRepsRecent
OVERLOAD_LOOKBACK_DAYS: Final[int] = 30  # Exercises considered by get_all_suggestions
VOLUME_TREND_PERCENT: Final[float] = 5.0  # +/- change classed as improving/declining

REPS_INCREASE_THRESHOLD: Final[float] = 10.0
REPS_HIGH_CONFIDENCE: Final[float] = 12.0
REPS_DELOAD_THRESHOLD: Final[float] = 6.0

SMALL_WEIGHT_INCREMENT: Final[float] = 2.5
LARGE_WEIGHT_INCREMENT: Final[float] = 5.0
INCREMENT_MAGNITUDE_THRESHOLD: Final[float] = 20.0  # <= uses the small increment

DELOAD_ABSOLUTE_KG: Final[float] = 5.0
DELOAD_FRACTION: Final[float] = 0.90
DELOAD_ROUNDING: Final[float] = 2.5

# =============================================================================
# STRENGTH TREND FORECAST (PR PREDICTION)
# =============================================================================

FORECAST_LOOKBACK_DAYS: Final[int] = 60
FORECAST_MIN_SETS: Final[int] = 4
FORECAST_MIN_SESSIONS: Final[int] = 3
BRZYCKI_MAX_REPS: Final[int] = 36

TREND_SLOPE_THRESHOLD: Final[float] = 0.5  # e1RM kg per session
PR_MIN_R_SQUARED: Final[float] = 0.5
PR_MARGIN: Final[float] = 1.01  # predictedMax must beat currentMax by 1%
PR_WEIGHT_FACTOR: Final[float] = 1.025
PR_WEIGHT_ROUNDING: Final[float] = 2.5

PREDICTION_TTL_HOURS: Final[float] = 24.0

# =============================================================================
# XP AND LEVELS
# =============================================================================

XP_CURVE_EXPONENT: Final[float] = 2.0
XP_CURVE_SCALE: Final[float] = 100.0

# (highest level in band, title); levels above the last band get LEGEND_TITLE
LEVEL_TITLES: Final[list[tuple[int, str]]] = [
    (10, "Beginner"),
    (25, "Intermediate"),
    (50, "Advanced"),
    (75, "Elite"),
]
LEGEND_TITLE: Final[str] = "Legend"


# =============================================================================
# TYPED CONFIG OBJECTS
# =============================================================================


@dataclass(frozen=True)
class RecoveryConfig:
    """Muscle recovery tunables."""

    base_hours: dict[str, float] = field(default_factory=lambda: dict(BASE_RECOVERY_HOURS))
    default_hours: float = DEFAULT_RECOVERY_HOURS
    volume_adjustments: list[tuple[int, float]] = field(
        default_factory=lambda: list(VOLUME_RECOVERY_ADJUSTMENTS)
    )
    tracked_groups: list[str] = field(default_factory=lambda: list(TRACKED_MUSCLE_GROUPS))
    recovered_percent: float = RECOVERED_PERCENT
    recovering_percent: float = RECOVERING_PERCENT
    ready_percent: float = READY_TO_TRAIN_PERCENT


@dataclass(frozen=True)
class OverloadConfig:
    """Progressive overload tunables."""

    session_window: int = OVERLOAD_SESSION_WINDOW
    min_sessions: int = OVERLOAD_MIN_SESSIONS
    recent_sessions: int = OVERLOAD_RECENT_SESSIONS
    lookback_days: int = OVERLOAD_LOOKBACK_DAYS
    volume_trend_percent: float = VOLUME_TREND_PERCENT
    reps_increase: float = REPS_INCREASE_THRESHOLD
    reps_high_confidence: float = REPS_HIGH_CONFIDENCE
    reps_deload: float = REPS_DELOAD_THRESHOLD
    small_increment: float = SMALL_WEIGHT_INCREMENT
    large_increment: float = LARGE_WEIGHT_INCREMENT
    increment_threshold: float = INCREMENT_MAGNITUDE_THRESHOLD
    deload_absolute_kg: float = DELOAD_ABSOLUTE_KG
    deload_fraction: float = DELOAD_FRACTION
    deload_rounding: float = DELOAD_ROUNDING


@dataclass(frozen=True)
class ForecastConfig:
    """Strength trend / PR prediction tunables."""

    lookback_days: int = FORECAST_LOOKBACK_DAYS
    min_sets: int = FORECAST_MIN_SETS
    min_sessions: int = FORECAST_MIN_SESSIONS
    max_reps: int = BRZYCKI_MAX_REPS
    slope_threshold: float = TREND_SLOPE_THRESHOLD
    min_r_squared: float = PR_MIN_R_SQUARED
    pr_margin: float = PR_MARGIN
    weight_factor: float = PR_WEIGHT_FACTOR
    weight_rounding: float = PR_WEIGHT_ROUNDING
    ttl_hours: float = PREDICTION_TTL_HOURS


@dataclass(frozen=True)
class LevelConfig:
    """XP curve and level title bands."""

    exponent: float = XP_CURVE_EXPONENT
    scale: float = XP_CURVE_SCALE
    titles: list[tuple[int, str]] = field(default_factory=lambda: list(LEVEL_TITLES))
    top_title: str = LEGEND_TITLE


@dataclass(frozen=True)
class EngineConfig:
    """All engine tunables, one section per component."""

    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)
    overload: OverloadConfig = field(default_factory=OverloadConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    levels: LevelConfig = field(default_factory=LevelConfig)


def _pairs(raw: Any) -> list[tuple]:
    """Turn a YAML list of 2-item lists (or a mapping) into a list of tuples."""
    if isinstance(raw, dict):
        return [(k, v) for k, v in raw.items()]
    return [tuple(item) for item in raw]


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """
    Build an EngineConfig from a merged YAML dict.

    Unknown keys are ignored; missing keys keep the Python defaults.

    Args:
        data: Dict with optional "recovery", "overload", "forecast", "levels" sections

    Returns:
        EngineConfig instance
    """
    rec = dict(data.get("recovery") or {})
    if "base_hours" in rec:
        rec["base_hours"] = {**BASE_RECOVERY_HOURS, **rec["base_hours"]}
    if "volume_adjustments" in rec:
        adjustments = [(int(n), float(h)) for n, h in _pairs(rec["volume_adjustments"])]
        rec["volume_adjustments"] = sorted(adjustments, key=lambda p: p[0], reverse=True)

    lvl = dict(data.get("levels") or {})
    if "titles" in lvl:
        lvl["titles"] = sorted(
            ((int(top), str(title)) for top, title in _pairs(lvl["titles"])),
            key=lambda p: p[0],
        )

    return EngineConfig(
        recovery=RecoveryConfig(**_known(RecoveryConfig, rec)),
        overload=OverloadConfig(**_known(OverloadConfig, data.get("overload") or {})),
        forecast=ForecastConfig(**_known(ForecastConfig, data.get("forecast") or {})),
        levels=LevelConfig(**_known(LevelConfig, lvl)),
    )


def _known(cls: type, section: dict[str, Any]) -> dict[str, Any]:
    names = cls.__dataclass_fields__
    return {k: v for k, v in section.items() if k in names}


def load_engine_config() -> EngineConfig:
    """Load EngineConfig from bundled engine.yaml merged with the user override."""
    from .engine.config_loader import load_model_config

    return config_from_dict(load_model_config())
