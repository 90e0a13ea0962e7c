"""
CLI entry point using Typer.

Provides commands for the training intelligence engine:
- log-workout: Log a completed workout and run the completion workflow
- show-history: Display logged workouts
- delete-workout: Remove a workout by id
- recovery: Per-muscle recovery status and suggestions
- progression: Progressive overload suggestions
- predict: PR forecasts from the strength trend
- stats / achievements: Level, XP and achievement progress
"""

from .app import app

# Register commands by importing their modules.
from .commands import achievements, predictions, progression, recovery, workouts  # noqa: F401


if __name__ == "__main__":
    app()
