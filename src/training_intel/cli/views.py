"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of engine results.
"""

from rich.console import Console
from rich.table import Table

from ..core.exercises import display_name
from ..core.models import (
    AchievementStatus,
    CompletionReport,
    LevelProfile,
    PRPrediction,
    ProgressionSuggestion,
    RecoverySummary,
    Workout,
)

console = Console()

_STATUS_STYLE = {
    "recovered": "green",
    "recovering": "yellow",
    "fatigued": "red",
}

_CONFIDENCE_STYLE = {
    "high": "green",
    "medium": "yellow",
    "low": "dim",
}

_TREND_ARROW = {
    "improving": "[green]↑ improving[/green]",
    "plateau": "[yellow]→ plateau[/yellow]",
    "declining": "[red]↓ declining[/red]",
}

_RARITY_STYLE = {
    "common": "white",
    "uncommon": "green",
    "rare": "blue",
    "epic": "magenta",
    "legendary": "bold yellow",
}


def _fmt_kg(value: float) -> str:
    return f"{value:g}"


def _fmt_sets(workout: Workout) -> str:
    """Compact per-exercise set listing: 'Bench: 8@60, 8@60, !6@60'."""
    parts = []
    for ex in workout.exercises:
        sets = ", ".join(
            f"{'' if s.completed else '!'}{s.reps}@{_fmt_kg(s.weight)}" for s in ex.sets
        )
        parts.append(f"{display_name(ex.exercise_id)}: {sets}")
    return "\n".join(parts)


# =============================================================================
# HISTORY
# =============================================================================


def format_workout_table(workouts: list[Workout]) -> Table:
    """
    Create a Rich table displaying workout history.

    Args:
        workouts: List of workouts to display

    Returns:
        Rich Table object
    """
    table = Table(title="Workout History")

    table.add_column("Date", style="cyan")
    table.add_column("ID", style="dim")
    table.add_column("Sets")
    table.add_column("Volume(kg)", justify="right", style="bold")
    table.add_column("Min", justify="right")

    for workout in workouts:
        completed = workout.completed_sets()
        volume = sum(s.volume for s in completed)
        table.add_row(
            workout.date,
            workout.workout_id,
            _fmt_sets(workout),
            f"{volume:,.0f}",
            str(workout.duration_minutes) if workout.duration_minutes is not None else "-",
        )

    return table


def print_history(workouts: list[Workout]) -> None:
    """
    Print workout history to console.

    Args:
        workouts: Workouts to display
    """
    if not workouts:
        console.print("[yellow]No workouts recorded yet.[/yellow]")
        return

    console.print(format_workout_table(workouts))


def print_completion(report: CompletionReport) -> None:
    """Summary shown after a workout is logged."""
    s = report.summary
    print_success(f"Logged workout {report.workout_id}")
    print_info(f"Sets: {s.sets}  Reps: {s.reps}  Volume: {s.weight:,.0f} kg")

    for record in report.new_records:
        console.print(
            f"[bold green]New PR![/bold green] {display_name(record.exercise_id)}: "
            f"{_fmt_kg(record.weight)} kg × {record.reps} (e1RM {record.value:.1f} kg)"
        )

    for name in report.unlocked:
        console.print(f"[bold magenta]Achievement unlocked:[/bold magenta] {name}")

    stats = report.stats
    console.print(
        f"[dim]Streak: {stats.current_streak} day(s)  "
        f"Level {stats.current_level}  XP {stats.total_xp}[/dim]"
    )


# =============================================================================
# RECOVERY
# =============================================================================


def format_recovery_table(summary: RecoverySummary) -> Table:
    table = Table(title=f"Muscle Recovery (overall {summary.overall_recovery}%)")

    table.add_column("Muscle", style="cyan")
    table.add_column("Recovery", justify="right", style="bold")
    table.add_column("Status")
    table.add_column("Hours left", justify="right")
    table.add_column("Last trained", style="dim")
    table.add_column("Sets", justify="right")

    for m in summary.muscles:
        style = _STATUS_STYLE[m.status]
        table.add_row(
            m.muscle_group,
            f"{m.recovery_percent}%",
            f"[{style}]{m.status}[/{style}]",
            str(m.hours_remaining) if m.hours_remaining > 0 else "-",
            m.last_trained_at.strftime("%Y-%m-%d %H:%M") if m.last_trained_at else "never",
            str(m.total_sets) if m.last_trained_at else "-",
        )

    return table


def print_recovery(summary: RecoverySummary) -> None:
    console.print(format_recovery_table(summary))
    if summary.suggested_muscles:
        console.print(
            f"Ready to train ({summary.ready_count}): "
            f"[green]{', '.join(summary.suggested_muscles)}[/green]"
        )
    else:
        print_warning("No muscle group is ready to train yet.")


# =============================================================================
# PROGRESSION AND FORECASTS
# =============================================================================


def format_suggestion_table(suggestions: list[ProgressionSuggestion]) -> Table:
    table = Table(title="Progressive Overload")

    table.add_column("Exercise", style="cyan")
    table.add_column("Current(kg)", justify="right")
    table.add_column("Next(kg)", justify="right", style="bold")
    table.add_column("Confidence")
    table.add_column("Trend")
    table.add_column("Reason")
    table.add_column("Last", style="dim")

    for s in suggestions:
        style = _CONFIDENCE_STYLE[s.confidence]
        table.add_row(
            display_name(s.exercise_id),
            _fmt_kg(s.current_weight),
            _fmt_kg(s.suggested_weight),
            f"[{style}]{s.confidence}[/{style}]",
            _TREND_ARROW[s.trend],
            s.reason,
            s.last_performed,
        )

    return table


def print_suggestions(suggestions: list[ProgressionSuggestion]) -> None:
    if not suggestions:
        console.print("[yellow]Not enough recent sessions for overload suggestions.[/yellow]")
        return
    console.print(format_suggestion_table(suggestions))


def format_prediction_table(predictions: list[PRPrediction]) -> Table:
    table = Table(title="PR Forecast (estimated 1RM)")

    table.add_column("Exercise", style="cyan")
    table.add_column("Current", justify="right")
    table.add_column("Predicted", justify="right", style="bold")
    table.add_column("Try(kg)", justify="right")
    table.add_column("Best PR", justify="right", style="dim")
    table.add_column("R²", justify="right")
    table.add_column("Trend")
    table.add_column("Ready", justify="center")

    for p in predictions:
        table.add_row(
            display_name(p.exercise_id),
            f"{p.current_max:.1f}",
            f"{p.predicted_max:.1f}",
            _fmt_kg(p.suggested_weight),
            f"{p.current_pr:.1f}" if p.current_pr is not None else "-",
            f"{p.confidence:.2f}",
            _TREND_ARROW[p.trend],
            "[bold green]yes[/bold green]" if p.ready_for_pr else "no",
        )

    return table


def print_predictions(predictions: list[PRPrediction]) -> None:
    if not predictions:
        console.print("[yellow]Not enough recent sets to forecast any PRs.[/yellow]")
        return
    console.print(format_prediction_table(predictions))


# =============================================================================
# ACHIEVEMENTS
# =============================================================================


def format_profile_display(profile: LevelProfile) -> str:
    """
    Format level and lifetime stats as a text block.

    Args:
        profile: LevelProfile to display

    Returns:
        Formatted string
    """
    st = profile.stats
    lines = [
        f"Level {profile.level} ({profile.level_title})",
        f"- XP: {st.total_xp} / {profile.xp_for_next_level}  ({profile.xp_progress:.1f}% of level)",
        f"- Achievements: {profile.achievements_unlocked}/{profile.achievements_total}"
        f"  ({profile.achievements_percent}%)",
        f"- Workouts: {st.total_workouts}  Sets: {st.total_sets}  Reps: {st.total_reps}",
        f"- Volume lifted: {st.total_weight:,.0f} kg  PRs: {st.total_prs}",
        f"- Streak: {st.current_streak} (best {st.longest_streak})",
        f"- Last workout: {st.last_workout_date or 'never'}",
    ]
    return "\n".join(lines)


def print_profile(profile: LevelProfile) -> None:
    console.print(format_profile_display(profile))
    if profile.recent_achievements:
        console.print()
        console.print("[bold]Recent achievements[/bold]")
        for a in profile.recent_achievements:
            console.print(f"  {a.definition.name}  [dim]{a.unlocked_at:%Y-%m-%d}[/dim]")


def format_achievement_table(statuses: list[AchievementStatus]) -> Table:
    table = Table(title="Achievements")

    table.add_column("", justify="center", width=2)
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Rarity")
    table.add_column("XP", justify="right")
    table.add_column("Unlocked", style="dim")

    for a in statuses:
        d = a.definition
        style = _RARITY_STYLE.get(d.rarity, "white")
        table.add_row(
            "[green]✓[/green]" if a.is_unlocked else "",
            d.name,
            d.description,
            f"[{style}]{d.rarity}[/{style}]",
            str(d.xp_reward),
            a.unlocked_at.strftime("%Y-%m-%d") if a.unlocked_at else "-",
        )

    return table


def print_achievements(statuses: list[AchievementStatus]) -> None:
    console.print(format_achievement_table(statuses))


# =============================================================================
# MESSAGES
# =============================================================================


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
