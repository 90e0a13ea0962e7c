"""Progression command: progressive overload suggestions."""

import json
from typing import Annotated, Optional

import typer

from ...io.history_store import StorageError
from ...io.serializers import ValidationError
from .. import views
from ..app import AtOption, DataDirOption, JsonOption, UserOption, app, get_engine, parse_at


@app.command()
def progression(
    user: UserOption = "default",
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-e", help="Only this exercise (default: all trained in the last 30 days)"),
    ] = None,
    at: AtOption = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Suggest next working weights from recent session volume and reps.
    """
    try:
        analyzer = get_engine(data_dir).overload
        if exercise is not None:
            suggestion = analyzer.suggest(user, exercise)
            suggestions = [suggestion] if suggestion is not None else []
        else:
            suggestions = analyzer.get_all_suggestions(user, parse_at(at).date())
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([
            {
                "exercise_id": s.exercise_id,
                "current_weight": s.current_weight,
                "suggested_weight": s.suggested_weight,
                "confidence": s.confidence,
                "reason": s.reason,
                "trend": s.trend,
                "last_performed": s.last_performed,
            }
            for s in suggestions
        ], indent=2))
        return

    views.print_suggestions(suggestions)
