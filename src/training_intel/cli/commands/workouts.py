"""Workout commands: log-workout, show-history, delete-workout."""

import json
import uuid
from datetime import date as date_cls
from datetime import datetime
from typing import Annotated, Optional

import typer

from ...core.exercises import get_exercise
from ...core.models import SetRecord, Workout, WorkoutExercise
from ...io.history_store import StorageError
from ...io.serializers import (
    ValidationError,
    parse_sets_string,
    validate_date,
    workout_to_dict,
)
from .. import views
from ..app import DataDirOption, JsonOption, UserOption, app, get_engine, get_store


def _parse_muscle_overrides(pairs: list[str]) -> dict[str, str]:
    """Parse repeated EXERCISE=GROUP options."""
    overrides: dict[str, str] = {}
    for pair in pairs:
        exercise_id, sep, group = pair.partition("=")
        if not sep or not exercise_id.strip() or not group.strip():
            raise ValidationError(f"Invalid --muscle-group '{pair}'. Use EXERCISE=GROUP")
        overrides[exercise_id.strip()] = group.strip()
    return overrides


def _completed_at(workout_date: str, raw: str | None) -> datetime:
    """Completion instant: explicit value, now for today's workouts, else midnight."""
    if raw is not None:
        try:
            return datetime.fromisoformat(raw)
        except ValueError as e:
            raise ValidationError(f"Invalid --completed-at: {raw}") from e
    if workout_date == date_cls.today().isoformat():
        return datetime.now().replace(microsecond=0)
    return datetime.fromisoformat(workout_date)


def build_workout(
    workout_id: str,
    workout_date: str,
    exercises: list[str],
    sets: list[str],
    muscle_groups: dict[str, str],
    duration: int | None,
    completed_at: datetime,
) -> Workout:
    """
    Assemble a Workout from paired --exercise / --sets options.

    Raises:
        ValidationError: If the options do not pair up or a sets string is invalid
        ValueError: If an exercise is unknown and has no muscle group override
    """
    if not exercises:
        raise ValidationError("Give at least one --exercise with its --sets")
    if len(exercises) != len(sets):
        raise ValidationError(
            f"Got {len(exercises)} --exercise but {len(sets)} --sets; pass one --sets per exercise"
        )

    items: list[WorkoutExercise] = []
    for exercise_id, sets_str in zip(exercises, sets):
        group = muscle_groups.get(exercise_id) or get_exercise(exercise_id).muscle_group
        records = [
            SetRecord(
                exercise_id=exercise_id,
                session_date=workout_date,
                weight=weight,
                reps=reps,
                completed=completed,
            )
            for reps, weight, completed in parse_sets_string(sets_str)
        ]
        items.append(WorkoutExercise(exercise_id=exercise_id, muscle_group=group, sets=records))

    return Workout(
        workout_id=workout_id,
        date=workout_date,
        exercises=items,
        duration_minutes=duration,
        completed_at=completed_at,
    )


@app.command("log-workout")
def log_workout(
    exercise: Annotated[
        list[str],
        typer.Option("--exercise", "-e", help="Exercise id (repeat for each exercise)"),
    ],
    sets: Annotated[
        list[str],
        typer.Option("--sets", "-s", help="Sets for the matching --exercise, e.g. 8@60,8@60,!6@60 or 5x3@100"),
    ],
    user: UserOption = "default",
    date: Annotated[
        Optional[str],
        typer.Option("--date", "-d", help="Workout date (YYYY-MM-DD, default: today)"),
    ] = None,
    muscle_group: Annotated[
        Optional[list[str]],
        typer.Option("--muscle-group", "-m", help="EXERCISE=GROUP for exercises outside the library"),
    ] = None,
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", help="Workout duration in minutes"),
    ] = None,
    completed_at: Annotated[
        Optional[str],
        typer.Option("--completed-at", help="Completion time (ISO datetime, default: now / midnight of --date)"),
    ] = None,
    workout_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Workout id (default: generated)"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Log a completed workout and update recovery, stats, PRs and achievements.

      training-intel log-workout -e flat_barbell_bench_press -s "8@60,8@60,7@60" \\
        -e barbell_back_squat -s "5x3@100" --duration 55
    """
    try:
        workout_date = validate_date(date or date_cls.today().isoformat())
        workout = build_workout(
            workout_id=workout_id or f"{workout_date}-{uuid.uuid4().hex[:8]}",
            workout_date=workout_date,
            exercises=exercise,
            sets=sets,
            muscle_groups=_parse_muscle_overrides(muscle_group or []),
            duration=duration,
            completed_at=_completed_at(workout_date, completed_at),
        )

        engine = get_engine(data_dir)
        if engine.store.get_workout(user, workout.workout_id) is not None:
            views.print_error(f"Workout '{workout.workout_id}' is already logged")
            raise typer.Exit(1)

        engine.store.append_workout(user, workout)
        report = engine.complete_workout(user, workout)
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "workout_id": report.workout_id,
            "date": workout.date,
            "sets": report.summary.sets,
            "reps": report.summary.reps,
            "volume_kg": report.summary.weight,
            "new_records": [
                {"exercise_id": r.exercise_id, "e1rm": r.value, "weight": r.weight, "reps": r.reps}
                for r in report.new_records
            ],
            "unlocked": report.unlocked,
            "recovery_updated": report.recovery_updated,
            "current_streak": report.stats.current_streak,
            "total_xp": report.stats.total_xp,
            "level": report.stats.current_level,
        }, indent=2))
        return

    views.console.print()
    views.print_completion(report)


@app.command("show-history")
def show_history(
    user: UserOption = "default",
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-l", help="Limit number of workouts to show"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Display workout history as a table.
    """
    store = get_store(data_dir)

    try:
        workouts = store.load_workouts(user)
    except (ValidationError, StorageError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if limit is not None:
        workouts = workouts[-limit:]

    if json_out:
        print(json.dumps([workout_to_dict(w) for w in workouts], indent=2))
        return

    views.print_history(workouts)


@app.command("delete-workout")
def delete_workout(
    workout_id: Annotated[
        str,
        typer.Argument(help="Workout id to delete (see ID column in show-history)"),
    ],
    user: UserOption = "default",
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove a workout from history.

    Recovery, stats, records and achievements already derived from it are kept.
    """
    store = get_store(data_dir)

    try:
        target = store.get_workout(user, workout_id)
    except (ValidationError, StorageError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if target is None:
        views.print_error(f"Workout '{workout_id}' not found")
        raise typer.Exit(1)

    views.console.print(f"Workout to delete: [bold]{target.date}[/bold] ({target.workout_id})")

    if not force and not views.confirm_action("Delete this workout?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_workout(user, workout_id)
    except (KeyError, StorageError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Deleted workout {workout_id} ({target.date})")
