"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional, Tuple

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.snapshot_store import SnapshotStore
from ..config import AppConfig, get_default_config_path
from ..domain.availability import generate_slots
from ..domain.conflicts import find_conflicts
from ..domain.exceptions import SchedulingError
from ..domain.models import Season, Urgency
from ..domain.scoring import SlotScorer
from ..services.scheduling import ScheduleRequest, SchedulingService
from ..services.therapy_recommendations import TherapyRecommendationService

app = typer.Typer(
    name="clinicscheduler",
    help="Find, rank and explain therapy appointment slots",
    add_completion=False,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
SnapshotOption = Annotated[
    Optional[Path],
    typer.Option("--data", "-d", help="Clinic snapshot JSON. Defaults to the configured file."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show log output.")] = False,
):
    """Clinic appointment scheduling."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load(config_file: Optional[Path], snapshot_file: Optional[Path]) -> Tuple[AppConfig, SnapshotStore]:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path) if config_path.exists() else AppConfig()

    snapshot_path = snapshot_file or config.defaults.snapshot_file
    if snapshot_path is None:
        raise FileNotFoundError(
            "No clinic snapshot given. Use --data or set defaults.snapshot_file in config.yaml."
        )
    return config, SnapshotStore.from_file(snapshot_path, timezone=config.timezone)


def _parse_day(value: str, tz: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Invalid date '{value}': {e}[/red]")
        raise typer.Exit(1)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    therapist_id: Annotated[str, typer.Argument(help="Therapist id")],
    day: Annotated[str, typer.Argument(help="Day (YYYY-MM-DD)")],
    therapy_id: Annotated[Optional[str], typer.Option("--therapy", "-t", help="Therapy id, sets the slot length")] = None,
    duration: Annotated[int, typer.Option("--duration", help="Slot length in minutes without --therapy")] = 60,
    config_file: ConfigOption = None,
    snapshot_file: SnapshotOption = None,
):
    """
    Show a therapist's slots for one day and which ones are taken.

    Examples:

        clinicscheduler slots t-1 2024-11-25 --data clinic.json
        clinicscheduler slots t-1 2024-11-25 --therapy abhyanga --data clinic.json
    """
    try:
        config, store = _load(config_file, snapshot_file)
        therapist = store.get_therapist(therapist_id)
        if therapy_id:
            duration = store.get_therapy(therapy_id).typical_duration_minutes

        target = _parse_day(day, config.timezone)
        candidates = generate_slots(therapist.working_hours, target, duration)

        if not candidates:
            console.print(f"[yellow]⚠ {therapist.name} has no working hours on {day}.[/yellow]")
            return

        window = candidates[0]
        bookings = store.get_bookings(therapist_id, window.start.start_of("day"), window.start.end_of("day"))

        table = Table(title=f"{therapist.name} · {day}", show_header=True, header_style="bold cyan")
        table.add_column("Slot", style="bold")
        table.add_column("Status")
        table.add_column("Blocked by", style="dim")

        for slot in candidates:
            clashes = find_conflicts(slot, bookings)
            if clashes:
                table.add_row(str(slot), "[red]taken[/red]", ", ".join(b.booking_id for b in clashes))
            else:
                table.add_row(str(slot), "[green]free[/green]", "")

        console.print()
        console.print(table)
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def schedule(
    patient_id: Annotated[str, typer.Argument(help="Patient id")],
    therapy_id: Annotated[str, typer.Argument(help="Therapy id")],
    dates: Annotated[Optional[List[str]], typer.Option("--date", help="Day to search (YYYY-MM-DD), repeatable")] = None,
    therapist_id: Annotated[Optional[str], typer.Option("--therapist", help="Restrict to one therapist")] = None,
    urgency: Annotated[Urgency, typer.Option("--urgency", "-u", case_sensitive=False)] = Urgency.NORMAL,
    show_conflicts: Annotated[bool, typer.Option("--show-conflicts", help="List slots dropped because they are taken")] = False,
    config_file: ConfigOption = None,
    snapshot_file: SnapshotOption = None,
):
    """
    Rank the best appointment options for a patient.

    Without --date the next configured number of days is searched.
    """
    try:
        config, store = _load(config_file, snapshot_file)
        tz = config.timezone

        if dates:
            days = tuple(_parse_day(value, tz) for value in dates)
        else:
            today = pendulum.today(tz).date()
            days = tuple(today.add(days=offset) for offset in range(config.defaults.search_days))

        scorer = SlotScorer(
            weights=config.scoring.to_weights(),
            urgency_multipliers=config.scoring.to_urgency_multipliers(),
        )
        service = SchedulingService(
            store,
            scorer=scorer,
            max_search_days=config.defaults.max_search_days,
            max_options=config.defaults.max_options,
        )
        result = service.find_optimal_schedule(ScheduleRequest(
            patient_id=patient_id,
            therapy_id=therapy_id,
            dates=days,
            therapist_id=therapist_id,
            urgency=urgency,
            include_conflicts=show_conflicts,
        ))

        console.print()
        if not result.options:
            console.print(
                "[yellow]⚠ No free slots found.[/yellow]\n"
                "Try more days or another therapist."
            )
        else:
            table = Table(title=f"Options for {result.therapy.name}", show_header=True, header_style="bold cyan")
            table.add_column("#", justify="right")
            table.add_column("Therapist", style="bold yellow")
            table.add_column("Slot")
            table.add_column("Score", justify="right")
            table.add_column("Room", style="dim")
            table.add_column("Why")

            shown = result.recommended + result.alternatives
            for index, option in enumerate(shown, 1):
                table.add_row(
                    str(index),
                    option.therapist_name,
                    str(option.interval),
                    f"{option.score.total:.2f}",
                    option.room_id or "-",
                    "\n".join(option.reasons),
                )
            console.print(table)

            insights = result.insights()
            console.print(Panel.fit(
                f"[bold green]{insights.recommendation}[/bold green]\n"
                f"{insights.confidence}\n{insights.preparation}",
                title="✓ Recommendation",
            ))

        if show_conflicts and result.conflicts:
            console.print(f"\n[bold]{len(result.conflicts)} slot(s) already taken:[/bold]")
            for conflict in result.conflicts:
                blockers = ", ".join(b.booking_id for b in conflict.bookings)
                console.print(f"  {conflict.therapist_id} {conflict.interval} [dim]({blockers})[/dim]")

        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def recommend(
    patient_id: Annotated[str, typer.Argument(help="Patient id")],
    season: Annotated[Optional[Season], typer.Option("--season", case_sensitive=False)] = None,
    config_file: ConfigOption = None,
    snapshot_file: SnapshotOption = None,
):
    """
    Recommend therapies for a patient.
    """
    try:
        config, store = _load(config_file, snapshot_file)
        service = TherapyRecommendationService(config.recommendation_weights.to_weights())
        therapies = store.list_therapies()
        names = {therapy.therapy_id: therapy.name for therapy in therapies}

        report = service.recommend(
            store.get_patient(patient_id),
            store.get_patient_history(patient_id),
            therapies,
            season=season,
            today=pendulum.today(config.timezone).date(),
        )

        if not report.ranked:
            console.print("[yellow]No matching therapies in the catalog.[/yellow]")
            return

        table = Table(title=f"Therapies for {patient_id}", show_header=True, header_style="bold cyan")
        table.add_column("Therapy", style="bold yellow")
        table.add_column("Score", justify="right")
        table.add_column("Reasons")

        for rec in report.primary + report.secondary:
            table.add_row(names[rec.entity_id], f"{rec.total_score:.2f}", "\n".join(sorted(rec.reasons)))

        console.print()
        console.print(table)
        for warning in report.contraindications:
            console.print(f"[red]⚠ {warning}[/red]")
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def therapists(
    config_file: ConfigOption = None,
    snapshot_file: SnapshotOption = None,
):
    """
    List the therapists in the snapshot.
    """
    try:
        _, store = _load(config_file, snapshot_file)

        table = Table(title="Therapists", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Specializations", style="dim")
        table.add_column("Years", justify="right")

        for therapist in store.list_therapists():
            table.add_row(
                therapist.therapist_id,
                therapist.name,
                ", ".join(sorted(therapist.specializations)),
                f"{therapist.years_experience:g}",
            )

        console.print()
        console.print(table)
        console.print()

    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]clinicscheduler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
