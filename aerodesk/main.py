"""
AeroDesk terminal command line.

Every command builds the service container from configuration, runs one
workflow operation and renders the result with Rich. Workflow errors are
printed in red and exit with status 1.
"""

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

import typer
from pydantic import BaseModel
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .context import AeroDeskContext
from .exceptions import AeroDeskError
from .models.enums import BaggageType, FlightStatus, KPIStatus
from .utils.config import load_config
from .utils.log import configure_logging

app = typer.Typer(help="AeroDesk airport ground operations")
console = Console()

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S"]

KPI_COLORS = {
    KPIStatus.EXCELLENT: "green",
    KPIStatus.GOOD: "cyan",
    KPIStatus.WARNING: "yellow",
    KPIStatus.CRITICAL: "red",
    KPIStatus.NEUTRAL: "white",
}


@app.callback()
def main(
    ctx: typer.Context,
    env_file: Optional[str] = typer.Option(None, "--env-file", "-e", help="Path to a .env file"),
    database_url: Optional[str] = typer.Option(None, "--database-url", help="Override DATABASE_URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to stderr"),
):
    """AeroDesk airport ground operations."""
    ctx.obj = {"env_file": env_file, "database_url": database_url, "verbose": verbose}


@contextmanager
def open_context(ctx: typer.Context) -> Iterator[AeroDeskContext]:
    """Build the container for one command and render workflow errors."""
    options = ctx.obj or {}
    overrides = {"database_url": options["database_url"]} if options.get("database_url") else {}
    try:
        config = load_config(options.get("env_file"), **overrides)
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    configure_logging(config, stream=options.get("verbose", False))

    context = None
    try:
        context = AeroDeskContext.from_config(config)
        yield context
    except AeroDeskError as e:
        hint = " (retry later)" if e.retryable else ""
        console.print(f"[red]✗ {escape(str(e))}{hint}[/red]")
        raise typer.Exit(code=1)
    finally:
        if context is not None:
            context.close()


def show(model: BaseModel, title: str) -> None:
    """Render a model as a two-column table."""
    table = Table(title=title, box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in model.model_dump().items():
        if isinstance(value, datetime):
            value = value.strftime("%Y-%m-%d %H:%M")
        elif hasattr(value, "value"):
            value = value.value
        table.add_row(name, escape("" if value is None else str(value)))
    console.print(table)


@app.command("init-db")
def init_db(ctx: typer.Context):
    """Create the database tables."""
    with open_context(ctx) as aero:
        info: Dict[str, Any] = aero.db.get_connection_info()
        table = Table(title="Database", box=box.ROUNDED, show_header=False)
        for key, value in info.items():
            table.add_row(key, escape(str(value)))
        console.print(table)
        console.print("[green]✓ Tables ready[/green]")


@app.command("create-flight")
def create_flight(
    ctx: typer.Context,
    flight_no: str = typer.Argument(..., help="Flight number, e.g. AA101"),
    origin: str = typer.Argument(..., help="Origin airport code"),
    destination: str = typer.Argument(..., help="Destination airport code"),
    departure: datetime = typer.Option(..., "--departure", "-d", formats=DATETIME_FORMATS,
                                       help="Scheduled departure"),
    arrival: datetime = typer.Option(..., "--arrival", "-a", formats=DATETIME_FORMATS,
                                     help="Scheduled arrival"),
    aircraft: str = typer.Option("Boeing 737-800", "--aircraft", help="Aircraft type"),
):
    """Schedule a flight."""
    with open_context(ctx) as aero:
        flight = aero.flights.create_flight(flight_no, origin, destination, departure, arrival, aircraft)
        show(flight, f"Flight {flight.flight_no}")


@app.command("flight-status")
def flight_status(
    ctx: typer.Context,
    flight_id: int = typer.Argument(..., help="Flight id"),
    status: Optional[str] = typer.Argument(None, help="New status; omit to show the flight"),
):
    """Show a flight or move it to a new status. Cancelling applies the configured cascade."""
    with open_context(ctx) as aero:
        if status is None:
            show(aero.flights.get_flight(flight_id), f"Flight {flight_id}")
            return
        if status.upper() == FlightStatus.CANCELLED.value:
            outcome = aero.cancellation.cancel(flight_id)
            show(outcome.flight, f"Flight {outcome.flight.flight_no}")
            console.print(
                f"Released {len(outcome.released_assignments)} gate assignment(s), "
                f"reverted {len(outcome.reverted_bookings)} check-in(s)"
            )
            return
        flight = aero.flights.transition(flight_id, status)
        show(flight, f"Flight {flight.flight_no}")


@app.command("delay-flight")
def delay_flight(
    ctx: typer.Context,
    flight_id: int = typer.Argument(..., help="Flight id"),
    minutes: int = typer.Argument(..., help="Delay in minutes"),
):
    """Push a scheduled flight back."""
    with open_context(ctx) as aero:
        flight = aero.flights.delay_flight(flight_id, minutes)
        show(flight, f"Flight {flight.flight_no}")


@app.command("create-booking")
def create_booking(
    ctx: typer.Context,
    flight_id: int = typer.Argument(..., help="Flight id"),
    passenger: str = typer.Argument(..., help="Passenger full name"),
    passport: Optional[str] = typer.Option(None, "--passport", "-p", help="Passport number"),
    seat: Optional[str] = typer.Option(None, "--seat", "-s", help="Pre-assigned seat"),
    reference: Optional[str] = typer.Option(None, "--reference", "-r", help="Existing booking reference"),
):
    """Book a passenger on a flight."""
    with open_context(ctx) as aero:
        booking = aero.bookings.create_booking(flight_id, passenger, passport, seat, reference)
        show(booking, f"Booking {booking.booking_reference}")


@app.command("check-in")
def check_in(
    ctx: typer.Context,
    reference: str = typer.Argument(..., help="Booking reference, e.g. BK000042"),
    seat: str = typer.Argument(..., help="Seat, e.g. 14C"),
):
    """Check a passenger in."""
    with open_context(ctx) as aero:
        booking = aero.check_in.check_in_by_reference(reference, seat)
        console.print(
            f"[green]✓ {escape(booking.passenger_name)} checked in at seat {escape(booking.seat_number)}[/green]"
        )
        show(booking, f"Booking {booking.booking_reference}")


@app.command("tag-bag")
def tag_bag(
    ctx: typer.Context,
    booking_id: int = typer.Argument(..., help="Booking id"),
    weight: float = typer.Argument(..., help="Weight in kg"),
    baggage_type: BaggageType = typer.Option(BaggageType.CHECKED, "--type", "-t", case_sensitive=False,
                                             help="Baggage type"),
):
    """Register and tag a bag."""
    with open_context(ctx) as aero:
        bag = aero.baggage.register_baggage(booking_id, weight, baggage_type)
        console.print(f"[green]✓ Tag {bag.baggage_tag}[/green]")
        show(bag, f"Baggage {bag.baggage_tag}")


@app.command("advance-bag")
def advance_bag(
    ctx: typer.Context,
    tag: str = typer.Argument(..., help="Baggage tag, e.g. BG000001"),
    status: str = typer.Argument(..., help="New status (LOADED, IN_TRANSIT, DELIVERED, LOST)"),
):
    """Move a bag to its next handling status."""
    with open_context(ctx) as aero:
        bag = aero.baggage.advance_by_tag(tag, status)
        show(bag, f"Baggage {bag.baggage_tag}")


@app.command("create-gate")
def create_gate(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Gate name, e.g. G12"),
    inactive: bool = typer.Option(False, "--inactive", help="Create the gate deactivated"),
):
    """Add a gate."""
    with open_context(ctx) as aero:
        gate = aero.gates.create_gate(name, is_active=not inactive)
        show(gate, f"Gate {gate.gate_name}")


@app.command("gate-active")
def gate_active(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Gate name"),
    active: bool = typer.Option(True, "--activate/--deactivate", help="Target state"),
):
    """Activate or deactivate a gate."""
    with open_context(ctx) as aero:
        gate = aero.gates.get_by_name(name)
        gate = aero.gates.set_active(gate.id, active)
        state = "[green]active[/green]" if gate.is_active else "[yellow]inactive[/yellow]"
        console.print(f"Gate {escape(gate.gate_name)} is {state}")


@app.command("assign-gate")
def assign_gate(
    ctx: typer.Context,
    flight_id: int = typer.Argument(..., help="Flight id"),
    gate_name: str = typer.Argument(..., help="Gate name"),
    start: Optional[datetime] = typer.Option(None, "--from", formats=DATETIME_FORMATS,
                                             help="Window start (default: departure - 60 min)"),
    end: Optional[datetime] = typer.Option(None, "--to", formats=DATETIME_FORMATS,
                                           help="Window end (default: departure + 30 min)"),
):
    """Place a flight at a gate."""
    with open_context(ctx) as aero:
        gate = aero.gates.get_by_name(gate_name)
        assignment = aero.gates.assign_gate(flight_id, gate.id, start, end)
        show(assignment, f"Gate {gate.gate_name}")


@app.command()
def dashboard(ctx: typer.Context):
    """Show the operations KPIs."""
    with open_context(ctx) as aero:
        snapshot = aero.dashboard.snapshot()
        table = Table(title=f"Operations {snapshot.generated_at:%Y-%m-%d %H:%M}", box=box.ROUNDED)
        table.add_column("KPI", style="cyan")
        table.add_column("Value", justify="right")
        table.add_column("Unit")
        table.add_column("Status")
        for kpi in snapshot.kpis.values():
            color = KPI_COLORS[kpi.status]
            table.add_row(kpi.name, f"{kpi.value:g}", kpi.unit, f"[{color}]{kpi.status.value}[/{color}]")
        console.print(table)


@app.command()
def external(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="weather, flight_status, airport_info or live_tracking"),
    key: str = typer.Argument(..., help="City, flight number or airport code"),
):
    """Look up external data."""
    with open_context(ctx) as aero:
        payload = aero.external.fetch(kind, key)
        border = "green" if payload["source"] == "live" else "yellow"
        console.print(Panel(
            escape(json.dumps(payload["data"], indent=2, default=str)),
            title=f"{payload['kind']} {escape(payload['key'])} ({payload['source']})",
            border_style=border,
        ))


if __name__ == "__main__":
    app()
