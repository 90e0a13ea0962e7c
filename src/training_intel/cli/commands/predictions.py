"""Predict command: PR forecasts from the estimated-1RM trend."""

import json
from typing import Annotated, Optional

import typer

from ...io.history_store import StorageError
from ...io.serializers import ValidationError, prediction_to_dict
from .. import views
from ..app import AtOption, DataDirOption, JsonOption, UserOption, app, get_engine, parse_at


@app.command()
def predict(
    user: UserOption = "default",
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-e", help="Only this exercise (default: all with enough data)"),
    ] = None,
    at: AtOption = None,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Forecast estimated 1RMs and flag exercises ready for a PR attempt.

    Forecasts are cached for 24 hours per exercise.
    """
    try:
        now = parse_at(at)
        forecaster = get_engine(data_dir).forecaster
        if exercise is not None:
            prediction = forecaster.predict(user, exercise, now)
            predictions = [prediction] if prediction is not None else []
        else:
            predictions = forecaster.predict_all(user, now)
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([prediction_to_dict(p) for p in predictions], indent=2))
        return

    views.print_predictions(predictions)
