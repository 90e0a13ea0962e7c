"""Gamification commands: stats, achievements."""

import json
from typing import Annotated

import typer

from ...io.history_store import StorageError
from ...io.serializers import ValidationError, stats_to_dict
from .. import views
from ..app import DataDirOption, JsonOption, UserOption, app, get_engine


@app.command()
def stats(
    user: UserOption = "default",
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    Show level, XP progress, streaks and lifetime totals.
    """
    try:
        profile = get_engine(data_dir).achievements.profile(user)
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            **stats_to_dict(profile.stats),
            "level": profile.level,
            "level_title": profile.level_title,
            "xp_progress": profile.xp_progress,
            "xp_for_next_level": profile.xp_for_next_level,
            "achievements_unlocked": profile.achievements_unlocked,
            "achievements_total": profile.achievements_total,
            "achievements_percent": profile.achievements_percent,
        }, indent=2))
        return

    views.print_profile(profile)


@app.command()
def achievements(
    user: UserOption = "default",
    unlocked_only: Annotated[
        bool,
        typer.Option("--unlocked", help="Only list unlocked achievements"),
    ] = False,
    data_dir: DataDirOption = None,
    json_out: JsonOption = False,
) -> None:
    """
    List achievements with their unlock state.
    """
    try:
        statuses = get_engine(data_dir).achievements.list_achievements(user)
    except (ValidationError, StorageError, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if unlocked_only:
        statuses = [s for s in statuses if s.is_unlocked]

    if json_out:
        print(json.dumps([
            {
                "achievement_id": s.definition.achievement_id,
                "name": s.definition.name,
                "description": s.definition.description,
                "category": s.definition.category,
                "rarity": s.definition.rarity,
                "xp_reward": s.definition.xp_reward,
                "requirement": {
                    "type": s.definition.requirement.type,
                    "threshold": s.definition.requirement.threshold,
                },
                "is_unlocked": s.is_unlocked,
                "unlocked_at": s.unlocked_at.isoformat() if s.unlocked_at else None,
            }
            for s in statuses
        ], indent=2))
        return

    views.print_achievements(statuses)
