"""Recovery command: per-muscle recovery status and training suggestions."""

import json

import typer

from ...io.history_store import StorageError
from ...io.serializers import ValidationError
from .. import views
from ..app import AtOption, DataDirOption, JsonOption, UserOption, app, get_engine, parse_at


@app.command()
def recovery(
    user: UserOption = "default",
    at: AtOption = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show how recovered each tracked muscle group is and which to train next.
    """
    try:
        now = parse_at(at)
        summary = get_engine(data_dir).recovery.summary(user, now)
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "overall_recovery": summary.overall_recovery,
            "ready_count": summary.ready_count,
            "suggested_muscles": summary.suggested_muscles,
            "muscles": [
                {
                    "muscle_group": m.muscle_group,
                    "recovery_percent": m.recovery_percent,
                    "status": m.status,
                    "ready_to_train": m.ready_to_train,
                    "hours_remaining": m.hours_remaining,
                    "recovery_hours": m.recovery_hours,
                    "last_trained_at": m.last_trained_at.isoformat() if m.last_trained_at else None,
                    "total_sets": m.total_sets,
                    "total_volume": m.total_volume,
                }
                for m in summary.muscles
            ],
        }, indent=2))
        return

    views.print_recovery(summary)
