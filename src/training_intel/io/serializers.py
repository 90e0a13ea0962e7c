"""
JSON serialization for engine data models.

Handles conversion between dataclasses and JSON-compatible dicts, plus
parsing of the compact sets strings accepted by the CLI.
"""

import json
import re
from datetime import datetime
from typing import Any

from ..core.models import (
    MuscleRecoveryState,
    PersonalRecord,
    PRPrediction,
    SetRecord,
    UnlockedAchievement,
    UserStats,
    Workout,
    WorkoutExercise,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def _parse_instant(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value}") from e


def _instant(value: datetime | None) -> str | None:
    return value.isoformat(timespec="seconds") if value is not None else None


# =============================================================================
# WORKOUTS
# =============================================================================


def workout_to_dict(workout: Workout) -> dict[str, Any]:
    """
    Convert Workout to JSON-compatible dict.

    Sets are stored compactly; exercise_id and session_date are implied by
    the enclosing exercise and workout.
    """
    return {
        "workout_id": workout.workout_id,
        "date": workout.date,
        "duration_minutes": workout.duration_minutes,
        "completed_at": _instant(workout.completed_at),
        "exercises": [
            {
                "exercise_id": ex.exercise_id,
                "muscle_group": ex.muscle_group,
                "sets": [
                    {"weight": s.weight, "reps": s.reps, "completed": s.completed}
                    for s in ex.sets
                ],
            }
            for ex in workout.exercises
        ],
    }


def dict_to_workout(data: dict[str, Any]) -> Workout:
    """
    Convert dict to Workout.

    Raises:
        ValidationError: If data is invalid
    """
    try:
        workout_date = validate_date(str(data["date"]))
        exercises = []
        for ex in data.get("exercises", []):
            exercise_id = str(ex["exercise_id"])
            sets = []
            for s in ex.get("sets", []):
                weight = float(validate_non_negative(s.get("weight", 0.0), "weight"))
                reps = int(validate_non_negative(s.get("reps", 0), "reps"))
                sets.append(
                    SetRecord(
                        exercise_id=exercise_id,
                        session_date=workout_date,
                        weight=weight,
                        reps=reps,
                        completed=bool(s.get("completed", True)),
                    )
                )
            exercises.append(
                WorkoutExercise(
                    exercise_id=exercise_id,
                    muscle_group=str(ex["muscle_group"]),
                    sets=sets,
                )
            )

        duration = data.get("duration_minutes")
        return Workout(
            workout_id=str(data["workout_id"]),
            date=workout_date,
            exercises=exercises,
            duration_minutes=int(duration) if duration is not None else None,
            completed_at=_parse_instant(data.get("completed_at")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid workout record: {e}") from e


def workout_to_json_line(workout: Workout) -> str:
    """Convert a Workout to a single JSONL line."""
    return json.dumps(workout_to_dict(workout), separators=(",", ":"))


def json_line_to_workout(line: str) -> Workout:
    """
    Parse a JSONL line into a Workout.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_workout(data)


# =============================================================================
# ENGINE STATE
# =============================================================================


def recovery_state_to_dict(state: MuscleRecoveryState) -> dict[str, Any]:
    return {
        "muscle_group": state.muscle_group,
        "last_trained_at": _instant(state.last_trained_at),
        "total_sets": state.total_sets,
        "total_volume": state.total_volume,
        "recovery_hours": state.recovery_hours,
    }


def dict_to_recovery_state(data: dict[str, Any]) -> MuscleRecoveryState:
    try:
        return MuscleRecoveryState(
            muscle_group=str(data["muscle_group"]),
            last_trained_at=_parse_instant(data["last_trained_at"]),
            total_sets=int(data["total_sets"]),
            total_volume=float(data["total_volume"]),
            recovery_hours=float(data["recovery_hours"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid recovery record: {e}") from e


def prediction_to_dict(prediction: PRPrediction) -> dict[str, Any]:
    return {
        "exercise_id": prediction.exercise_id,
        "current_max": prediction.current_max,
        "predicted_max": prediction.predicted_max,
        "suggested_weight": prediction.suggested_weight,
        "confidence": prediction.confidence,
        "trend": prediction.trend,
        "ready_for_pr": prediction.ready_for_pr,
        "data_points": prediction.data_points,
        "computed_at": _instant(prediction.computed_at),
        "expires_at": _instant(prediction.expires_at),
        "current_pr": prediction.current_pr,
    }


def dict_to_prediction(data: dict[str, Any]) -> PRPrediction:
    try:
        return PRPrediction(
            exercise_id=str(data["exercise_id"]),
            current_max=float(data["current_max"]),
            predicted_max=float(data["predicted_max"]),
            suggested_weight=float(data["suggested_weight"]),
            confidence=float(data["confidence"]),
            trend=data["trend"],
            ready_for_pr=bool(data["ready_for_pr"]),
            data_points=int(data["data_points"]),
            computed_at=_parse_instant(data["computed_at"]),
            expires_at=_parse_instant(data["expires_at"]),
            current_pr=data.get("current_pr"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid prediction record: {e}") from e


def stats_to_dict(stats: UserStats) -> dict[str, Any]:
    return {
        "total_workouts": stats.total_workouts,
        "total_sets": stats.total_sets,
        "total_reps": stats.total_reps,
        "total_weight": stats.total_weight,
        "total_prs": stats.total_prs,
        "total_duration": stats.total_duration,
        "current_streak": stats.current_streak,
        "longest_streak": stats.longest_streak,
        "last_workout_date": stats.last_workout_date,
        "total_xp": stats.total_xp,
        "current_level": stats.current_level,
    }


def dict_to_stats(data: dict[str, Any]) -> UserStats:
    try:
        return UserStats(
            total_workouts=int(data.get("total_workouts", 0)),
            total_sets=int(data.get("total_sets", 0)),
            total_reps=int(data.get("total_reps", 0)),
            total_weight=float(data.get("total_weight", 0.0)),
            total_prs=int(data.get("total_prs", 0)),
            total_duration=int(data.get("total_duration", 0)),
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_workout_date=data.get("last_workout_date"),
            total_xp=int(data.get("total_xp", 0)),
            current_level=int(data.get("current_level", 1)),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid stats record: {e}") from e


def unlocked_to_dict(unlocked: UnlockedAchievement) -> dict[str, Any]:
    return {
        "achievement_id": unlocked.achievement_id,
        "unlocked_at": _instant(unlocked.unlocked_at),
    }


def dict_to_unlocked(user_id: str, data: dict[str, Any]) -> UnlockedAchievement:
    try:
        return UnlockedAchievement(
            achievement_id=str(data["achievement_id"]),
            user_id=user_id,
            unlocked_at=_parse_instant(data["unlocked_at"]),
        )
    except (KeyError, TypeError) as e:
        raise ValidationError(f"Invalid achievement record: {e}") from e


def record_to_dict(record: PersonalRecord) -> dict[str, Any]:
    return {
        "exercise_id": record.exercise_id,
        "value": record.value,
        "weight": record.weight,
        "reps": record.reps,
        "date": record.date,
    }


def dict_to_record(data: dict[str, Any]) -> PersonalRecord:
    try:
        return PersonalRecord(
            exercise_id=str(data["exercise_id"]),
            value=float(data["value"]),
            weight=float(data["weight"]),
            reps=int(data["reps"]),
            date=validate_date(str(data["date"])),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid personal record: {e}") from e


# =============================================================================
# SETS STRING PARSING
# =============================================================================


def parse_sets_string(sets_str: str) -> list[tuple[int, float, bool]]:
    """
    Parse a sets string.

    Comma-separated groups, each one of:
        reps@kg        e.g. "8@60"       one set of 8 reps at 60 kg
        NxM@kg         e.g. "5x3@100"    3 sets of 5 reps at 100 kg
        reps kg        e.g. "8 60"       space-separated
        reps           e.g. "12"         bodyweight (0 kg)

    A leading "!" marks the set(s) as not completed, e.g. "!6@100".

    Args:
        sets_str: Sets string to parse

    Returns:
        List of (reps, weight_kg, completed) tuples

    Raises:
        ValidationError: If format is invalid
    """
    if not sets_str or not sets_str.strip():
        raise ValidationError("Sets string cannot be empty")

    sets: list[tuple[int, float, bool]] = []
    parts = [p.strip() for p in sets_str.split(",") if p.strip()]

    for part in parts:
        completed = not part.startswith("!")
        body = part.lstrip("!").strip()

        match_multi = re.match(r"^(\d+)\s*[xX×]\s*(\d+)\s*@\s*(\d+\.?\d*)$", body)
        match_at = re.match(r"^(\d+)\s*@\s*(\d+\.?\d*)$", body)
        match_sp = re.match(r"^(\d+)\s+(\d+\.?\d*)$", body)
        match_bare = re.match(r"^(\d+)$", body)

        if match_multi:
            reps = int(match_multi.group(1))
            count = int(match_multi.group(2))
            weight = float(match_multi.group(3))
            if count < 1:
                raise ValidationError(f"Set count must be at least 1: '{part}'")
            sets.extend([(reps, weight, completed)] * count)
            continue
        if match_at:
            reps, weight = int(match_at.group(1)), float(match_at.group(2))
        elif match_sp:
            reps, weight = int(match_sp.group(1)), float(match_sp.group(2))
        elif match_bare:
            reps, weight = int(match_bare.group(1)), 0.0
        else:
            raise ValidationError(
                f"Invalid set format: '{part}'.\n"
                f"Use: reps@kg (e.g. 8@60), repsxsets@kg (e.g. 5x3@100),\n"
                f"     reps kg (e.g. 8 60) or bare reps; prefix '!' for a missed set."
            )

        sets.append((reps, weight, completed))

    if not sets:
        raise ValidationError("No valid sets found in sets string")

    return sets
