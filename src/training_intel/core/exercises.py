"""
Exercise library.

Maps exercise ids to display names and the muscle group whose recovery
they load.  Definitions come from the bundled ``exercises.yaml``; user
entries in ``~/.training-intel/exercises.yaml`` are merged over them by id,
so a user file can retarget an exercise or add a new one.
"""

from dataclasses import dataclass

from .engine.config_loader import EXERCISES_FILE, load_yaml_layers

_REQUIRED_FIELDS: frozenset[str] = frozenset({"name", "muscle_group"})


@dataclass(frozen=True)
class ExerciseDefinition:
    """One entry of the exercise library."""

    exercise_id: str
    display_name: str
    muscle_group: str
    category: str = "compound"
    equipment: str = "other"


def _definition_from_dict(exercise_id: str, d: dict) -> ExerciseDefinition:
    missing = _REQUIRED_FIELDS - set(d)
    if missing:
        raise ValueError(f"Exercise '{exercise_id}' missing fields: {sorted(missing)}")
    return ExerciseDefinition(
        exercise_id=exercise_id,
        display_name=str(d["name"]),
        muscle_group=str(d["muscle_group"]),
        category=str(d.get("category", "compound")),
        equipment=str(d.get("equipment", "other")),
    )


def load_exercise_library() -> dict[str, ExerciseDefinition]:
    """
    Load the merged exercise library.

    Raises:
        RuntimeError: If no exercise definitions could be loaded
        ValueError: If an entry is missing a required field
    """
    raw = load_yaml_layers(EXERCISES_FILE).get("exercises") or {}
    library = {str(k): _definition_from_dict(str(k), v) for k, v in raw.items()}
    if not library:
        raise RuntimeError(
            "training-intel: no exercise definitions could be loaded. "
            "Check that src/training_intel/exercises.yaml is present and valid."
        )
    return library


_LIBRARY: dict[str, ExerciseDefinition] | None = None


def get_library() -> dict[str, ExerciseDefinition]:
    """The exercise library, loaded on first use."""
    global _LIBRARY
    if _LIBRARY is None:
        _LIBRARY = load_exercise_library()
    return _LIBRARY


def get_exercise(exercise_id: str) -> ExerciseDefinition:
    """
    Return the ExerciseDefinition for the given exercise_id.

    Raises:
        ValueError: If exercise_id is not in the library
    """
    library = get_library()
    if exercise_id not in library:
        raise ValueError(
            f"Unknown exercise '{exercise_id}'. Pass --muscle-group or add it to {EXERCISES_FILE}."
        )
    return library[exercise_id]


def display_name(exercise_id: str) -> str:
    """Human name for an exercise id, falling back to the id itself."""
    exercise = get_library().get(exercise_id)
    return exercise.display_name if exercise is not None else exercise_id
