"""SeaTime CLI - operator commands for the sea-time detection service.

Commands:
  init-db       - create tables and run column migrations
  serve         - run the HTTP API with the background scheduler
  tick          - run one scheduler iteration (cron-style hosting)
  verify-tasks  - make sure every active vessel has a position check task
  add-vessel    - register an active vessel and provision its task
  status        - scheduled tasks and pending sea-time entries
"""
from __future__ import annotations

import typer
from typing import Optional
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="seatime",
    help="Automated sea-time detection from vessel positions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_database():
    """Create tables and apply additive migrations."""
    from seatime.database import init_db

    with console.status("[bold]Creating database..."):
        init_db()
    console.print("[green]Database ready.[/green]")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the API; the scheduler starts with it unless SCHEDULER_ENABLED=false."""
    import uvicorn

    console.print(f"SeaTime API at [cyan]http://{host}:{port}[/cyan] - press Ctrl+C to stop")
    uvicorn.run("seatime.main:app", host=host, port=port)


@app.command("tick")
def tick():
    """Process the tasks that are due right now, once."""
    from seatime.modules.scheduler import SeaTimeScheduler

    scheduler = SeaTimeScheduler()
    with console.status("[bold]Checking due vessels..."):
        summary = scheduler.run_iteration()

    if summary is None:
        console.print("[red]Iteration failed or was skipped, see the log.[/red]")
        raise typer.Exit(1)
    if not summary.get("polling_enabled", True):
        console.print("[yellow]MYSHIPTRACKING_API_KEY not set - polling is disabled.[/yellow]")
        raise typer.Exit(1)

    console.print(
        f"Due: {summary['due']}  Succeeded: {summary['succeeded']}  "
        f"Failed: {summary['failed']}  Fetch errors: {summary['fetch_errors']}"
    )
    console.print(
        f"Entries created: {summary['entries_created']}  "
        f"extended: {summary['entries_extended']}"
    )


@app.command("verify-tasks")
def verify_tasks():
    """Create or reactivate position check tasks for active vessels."""
    from seatime.database import SessionLocal
    from seatime.modules.task_provisioning import ensure_tracking_tasks
    from seatime.utils.dates import utcnow

    db = SessionLocal()
    try:
        summary = ensure_tracking_tasks(db, utcnow())
    finally:
        db.close()

    console.print(f"Active vessels: {summary['total_active_vessels']}")
    console.print(
        f"  [green]created {summary['created']}[/green]  "
        f"[cyan]reactivated {summary['reactivated']}[/cyan]  "
        f"[dim]already active {summary['already_active']}[/dim]"
    )


@app.command("add-vessel")
def add_vessel(
    mmsi: str = typer.Option(..., "--mmsi", help="9-digit MMSI"),
    name: str = typer.Option(..., "--name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Owner reference"),
):
    """Register a vessel as active and give it a position check task."""
    if not (mmsi.isdigit() and len(mmsi) == 9):
        console.print(f"[red]MMSI must be 9 digits, got {mmsi!r}[/red]")
        raise typer.Exit(1)

    from seatime.database import SessionLocal
    from seatime.models.vessel import Vessel
    from seatime.modules.task_provisioning import ensure_tracking_tasks
    from seatime.utils.dates import utcnow

    db = SessionLocal()
    try:
        existing = db.query(Vessel).filter(Vessel.mmsi == mmsi, Vessel.owner_id == owner).first()
        if existing is not None:
            existing.is_active = True
            vessel = existing
        else:
            vessel = Vessel(mmsi=mmsi, name=name, owner_id=owner, is_active=True)
            db.add(vessel)
        db.commit()
        ensure_tracking_tasks(db, utcnow())
        console.print(f"[green]Tracking {vessel.name} (MMSI {vessel.mmsi}), vessel id {vessel.vessel_id}[/green]")
    finally:
        db.close()


@app.command("status")
def status(
    limit: int = typer.Option(20, "--limit", help="Rows per table"),
):
    """Show scheduled tasks and pending sea-time entries."""
    from seatime.config import settings
    from seatime.database import SessionLocal
    from seatime.models.base import SeaTimeStatusEnum
    from seatime.models.scheduled_task import ScheduledTask
    from seatime.models.sea_time_entry import SeaTimeEntry
    from seatime.models.vessel import Vessel

    db = SessionLocal()
    try:
        console.print("[bold]System[/bold]")
        console.print("  Database: [green]OK[/green]")
        if settings.MYSHIPTRACKING_API_KEY:
            console.print("  Provider: [green]configured[/green]")
        else:
            console.print("  Provider: [red]MYSHIPTRACKING_API_KEY not set - polling disabled[/red]")

        rows = (
            db.query(ScheduledTask, Vessel)
            .join(Vessel, Vessel.vessel_id == ScheduledTask.vessel_id)
            .order_by(ScheduledTask.next_run_at.asc())
            .limit(limit)
            .all()
        )
        table = Table(title=f"Scheduled Tasks ({len(rows)})")
        table.add_column("Task", style="cyan")
        table.add_column("Vessel")
        table.add_column("MMSI")
        table.add_column("Every (h)", justify="right")
        table.add_column("Last run")
        table.add_column("Next run")
        table.add_column("Active")
        for task, vessel in rows:
            active = task.is_active and vessel.is_active
            table.add_row(
                str(task.task_id),
                vessel.name,
                vessel.mmsi,
                f"{task.interval_hours:g}",
                str(task.last_run_at)[:16] if task.last_run_at else "-",
                str(task.next_run_at)[:16],
                "[green]yes[/green]" if active else "[dim]no[/dim]",
            )
        console.print(table)

        entries = (
            db.query(SeaTimeEntry, Vessel)
            .join(Vessel, Vessel.vessel_id == SeaTimeEntry.vessel_id)
            .filter(SeaTimeEntry.status == SeaTimeStatusEnum.PENDING.value)
            .order_by(SeaTimeEntry.start_time.desc())
            .limit(limit)
            .all()
        )
        table = Table(title=f"Pending Sea-Time Entries ({len(entries)})")
        table.add_column("ID", style="cyan")
        table.add_column("Vessel")
        table.add_column("Day")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Hours", justify="right")
        table.add_column("nm", justify="right")
        table.add_column("MCA")
        for entry, vessel in entries:
            table.add_row(
                str(entry.entry_id),
                vessel.name,
                str(entry.entry_date) if entry.entry_date else "-",
                str(entry.start_time)[:16],
                str(entry.end_time)[:16] if entry.end_time else "-",
                f"{entry.duration_hours:.2f}" if entry.duration_hours is not None else "-",
                f"{entry.distance_nm:.1f}" if entry.distance_nm is not None else "-",
                "[green]yes[/green]" if entry.mca_compliant else "[dim]no[/dim]",
            )
        console.print(table)
    finally:
        db.close()
