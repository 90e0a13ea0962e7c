"""Shared Typer app object, shared option types, and store utility."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.workflow import TrainingEngine
from ..io.history_store import EngineStore, get_default_base_dir
from ..io.serializers import ValidationError

# Shared --user option type used across all commands
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id (one data directory per user)"),
]

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-p", help="Data directory (default: ~/.training-intel)"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

AtOption = Annotated[
    Optional[str],
    typer.Option("--at", help="Evaluate at this time (ISO datetime, default: now)"),
]

app = typer.Typer(
    name="training-intel",
    help="Training intelligence: muscle recovery, overload suggestions, PR forecasts and achievements.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log engine decisions to stderr"),
    ] = False,
) -> None:
    """
    Training intelligence engine for logged strength workouts.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_store(data_dir: Path | None) -> EngineStore:
    """Get engine store from path or the default location."""
    if data_dir is None:
        data_dir = get_default_base_dir()
    return EngineStore(data_dir)


def get_engine(data_dir: Path | None) -> TrainingEngine:
    """TrainingEngine over the store at ``data_dir``."""
    return TrainingEngine(get_store(data_dir))


def parse_at(raw: str | None) -> datetime:
    """
    Resolve the --at option.

    Raises:
        ValidationError: If the value is not an ISO date or datetime
    """
    if raw is None:
        return datetime.now().replace(microsecond=0)
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid --at value: {raw}. Expected YYYY-MM-DD[THH:MM]") from e
