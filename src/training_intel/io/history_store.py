"""
File-backed storage for workout history and engine state.

Each user gets a directory under the base dir:

    <base_dir>/<user_id>/workouts.jsonl   one completed workout per line
    <base_dir>/<user_id>/state.json       recovery, predictions, stats,
                                          achievement unlocks, personal records

EngineStore implements every collaborator protocol in core.interfaces.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.engine.config_loader import get_config_home
from ..core.models import (
    MuscleRecoveryState,
    PersonalRecord,
    PRPrediction,
    SetRecord,
    UnlockedAchievement,
    UserStats,
    Workout,
)
from .serializers import (
    ValidationError,
    dict_to_prediction,
    dict_to_record,
    dict_to_recovery_state,
    dict_to_stats,
    dict_to_unlocked,
    json_line_to_workout,
    prediction_to_dict,
    record_to_dict,
    recovery_state_to_dict,
    stats_to_dict,
    unlocked_to_dict,
    workout_to_json_line,
)

logger = logging.getLogger(__name__)

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.@-]+$")


class StorageError(Exception):
    """Raised when the store cannot read or write its files."""

    pass


class EngineStore:
    """
    Manages workout history and engine state for any number of users.

    Workouts are kept sorted by date; appending a workout whose id is
    already stored replaces it.  State rows are upserted by key, so
    writing the same value twice leaves the same file behind.
    """

    def __init__(self, base_dir: str | Path):
        """
        Initialize the store.

        Args:
            base_dir: Directory holding one sub-directory per user
        """
        self.base_dir = Path(base_dir)

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def user_dir(self, user_id: str) -> Path:
        if not _USER_ID_RE.match(user_id) or user_id in {".", ".."}:
            raise ValidationError(f"Invalid user id: '{user_id}'")
        return self.base_dir / user_id

    def workouts_path(self, user_id: str) -> Path:
        return self.user_dir(user_id) / "workouts.jsonl"

    def state_path(self, user_id: str) -> Path:
        return self.user_dir(user_id) / "state.json"

    # -------------------------------------------------------------------------
    # Workout history
    # -------------------------------------------------------------------------

    def load_workouts(self, user_id: str) -> list[Workout]:
        """
        Load all workouts for the user.

        Returns:
            List of Workout, sorted by date (empty if the user has no history)

        Raises:
            ValidationError: If a line cannot be parsed
            StorageError: If the file cannot be read
        """
        path = self.workouts_path(user_id)
        if not path.exists():
            return []

        workouts: list[Workout] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        workouts.append(json_line_to_workout(line))
                    except ValidationError as e:
                        raise ValidationError(
                            f"Error parsing line {line_num} in {path}: {e}"
                        ) from e
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

        workouts.sort(key=lambda w: w.date)
        return workouts

    def append_workout(self, user_id: str, workout: Workout) -> None:
        """
        Add a workout to the user's history, replacing one with the same id.

        Maintains chronological order; workouts on the same date keep
        insertion order.
        """
        workouts = [w for w in self.load_workouts(user_id) if w.workout_id != workout.workout_id]

        insert_idx = len(workouts)
        for i, existing in enumerate(workouts):
            if workout.date < existing.date:
                insert_idx = i
                break
        workouts.insert(insert_idx, workout)

        self._write_workouts(user_id, workouts)
        logger.debug("Stored workout %s for %s", workout.workout_id, user_id)

    def get_workout(self, user_id: str, workout_id: str) -> Workout | None:
        for workout in self.load_workouts(user_id):
            if workout.workout_id == workout_id:
                return workout
        return None

    def delete_workout(self, user_id: str, workout_id: str) -> None:
        """
        Delete a workout by id.

        Derived state (recovery, stats, records) is not rewound.

        Raises:
            KeyError: If no workout has that id
        """
        workouts = self.load_workouts(user_id)
        remaining = [w for w in workouts if w.workout_id != workout_id]
        if len(remaining) == len(workouts):
            raise KeyError(f"Workout '{workout_id}' not found")
        self._write_workouts(user_id, remaining)

    def _write_workouts(self, user_id: str, workouts: list[Workout]) -> None:
        path = self.workouts_path(user_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                for workout in workouts:
                    f.write(workout_to_json_line(workout) + "\n")
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def sets_for_exercise(
        self, user_id: str, exercise_id: str, since: str | None = None
    ) -> list[SetRecord]:
        """Completed sets of one exercise on or after ``since``, date ascending."""
        result: list[SetRecord] = []
        for workout in self.load_workouts(user_id):
            if since is not None and workout.date < since:
                continue
            for exercise in workout.exercises:
                if exercise.exercise_id == exercise_id:
                    result.extend(exercise.completed_sets())
        return result

    def exercises_trained_since(self, user_id: str, since: str) -> list[str]:
        """Distinct exercise ids with a completed set on or after ``since``, first-seen order."""
        seen: dict[str, None] = {}
        for workout in self.load_workouts(user_id):
            if workout.date < since:
                continue
            for exercise in workout.exercises:
                if exercise.completed_sets():
                    seen.setdefault(exercise.exercise_id, None)
        return list(seen)

    # -------------------------------------------------------------------------
    # Engine state
    # -------------------------------------------------------------------------

    def _load_state(self, user_id: str) -> dict[str, Any]:
        path = self.state_path(user_id)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _save_state(self, user_id: str, state: dict[str, Any]) -> None:
        path = self.state_path(user_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def load_recovery(self, user_id: str) -> dict[str, MuscleRecoveryState]:
        rows = self._load_state(user_id).get("recovery", {})
        return {group: dict_to_recovery_state(row) for group, row in rows.items()}

    def upsert_recovery(self, user_id: str, state: MuscleRecoveryState) -> None:
        data = self._load_state(user_id)
        data.setdefault("recovery", {})[state.muscle_group] = recovery_state_to_dict(state)
        self._save_state(user_id, data)

    def get_prediction(self, user_id: str, exercise_id: str) -> PRPrediction | None:
        row = self._load_state(user_id).get("predictions", {}).get(exercise_id)
        return dict_to_prediction(row) if row is not None else None

    def upsert_prediction(self, user_id: str, prediction: PRPrediction) -> None:
        data = self._load_state(user_id)
        data.setdefault("predictions", {})[prediction.exercise_id] = prediction_to_dict(prediction)
        self._save_state(user_id, data)

    def load_stats(self, user_id: str) -> UserStats | None:
        row = self._load_state(user_id).get("stats")
        return dict_to_stats(row) if row is not None else None

    def save_stats(self, user_id: str, stats: UserStats) -> None:
        data = self._load_state(user_id)
        data["stats"] = stats_to_dict(stats)
        self._save_state(user_id, data)

    def load_unlocked(self, user_id: str) -> list[UnlockedAchievement]:
        rows = self._load_state(user_id).get("achievements", [])
        return [dict_to_unlocked(user_id, row) for row in rows]

    def add_unlocked(self, user_id: str, achievement_id: str, unlocked_at: datetime) -> bool:
        data = self._load_state(user_id)
        rows = data.setdefault("achievements", [])
        if any(row.get("achievement_id") == achievement_id for row in rows):
            return False
        rows.append(
            unlocked_to_dict(
                UnlockedAchievement(
                    achievement_id=achievement_id,
                    user_id=user_id,
                    unlocked_at=unlocked_at,
                )
            )
        )
        self._save_state(user_id, data)
        return True

    def load_records(self, user_id: str, exercise_id: str | None = None) -> list[PersonalRecord]:
        """Stored personal records in the order they were set."""
        rows = self._load_state(user_id).get("records", [])
        records = [dict_to_record(row) for row in rows]
        if exercise_id is not None:
            records = [r for r in records if r.exercise_id == exercise_id]
        return records

    def best_record(self, user_id: str, exercise_id: str) -> PersonalRecord | None:
        records = self.load_records(user_id, exercise_id)
        if not records:
            return None
        return max(records, key=lambda r: r.value)

    def add_record(self, user_id: str, record: PersonalRecord) -> None:
        data = self._load_state(user_id)
        data.setdefault("records", []).append(record_to_dict(record))
        self._save_state(user_id, data)


def get_default_base_dir() -> Path:
    """Default data directory (~/.training-intel, or $TRAINING_INTEL_HOME)."""
    return get_config_home()


def get_default_store() -> EngineStore:
    """EngineStore rooted at the default data directory."""
    return EngineStore(get_default_base_dir())
