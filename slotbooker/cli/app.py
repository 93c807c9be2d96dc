"""
Main CLI application using Typer.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.appointment_store import SqlAppointmentStore
from ..adapters.config_repository import ConfigAgentRepository
from ..adapters.factory import get_authenticator, get_calendar_client
from ..adapters.mock_calendar_client import MockAuthenticator, MockCalendarClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingEngineError, InvalidInputError
from ..domain.models import CalendarProvider
from ..services.agent_context import pick_calendar_connection, validate_calendar_connection
from ..services.availability import AvailabilityService
from ..services.booking import BookingService
from ..services.calendar_gateway import CalendarGateway

app = typer.Typer(
    name="slotbooker",
    help="List open appointment slots and book them against an external calendar",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use an in-memory calendar and skip OAuth.")]
MockDataOption = Annotated[Optional[Path], typer.Option("--mock-data", help="JSON file with busy events for --mock.")]
JsonOption = Annotated[bool, typer.Option("--json", help="Print the raw structured result.")]
TimezoneOption = Annotated[Optional[str], typer.Option("--timezone", "-z", help="IANA zone overriding the agent's zone.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]


@dataclass
class Engine:
    """Wired services for one CLI invocation."""
    config: AppConfig
    repository: ConfigAgentRepository
    store: SqlAppointmentStore
    availability: AvailabilityService
    booking: BookingService


def _configure_logging(verbose: bool) -> None:
    debug = verbose or os.getenv("SLOTBOOKER_DEBUG") == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _build_engine(config_file: Optional[Path], mock: bool, mock_data: Optional[Path]) -> Engine:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    repository = ConfigAgentRepository(config)

    if mock:
        err_console.print("[yellow]⚠  MOCK MODE: using an in-memory calendar[/yellow]\n")
        client = MockCalendarClient(data_file=mock_data)
        authenticator = MockAuthenticator()
        clients = {provider: client for provider in CalendarProvider}
        authenticators = {provider: authenticator for provider in CalendarProvider}
    else:
        clients = {provider: get_calendar_client(provider, config) for provider in CalendarProvider}
        authenticators = {
            provider: get_authenticator(provider, config, on_refresh=repository.note_refreshed_tokens)
            for provider in CalendarProvider
        }

    gateway = CalendarGateway(
        clients=clients,
        authenticators=authenticators,
        step_timeout_seconds=config.defaults.step_timeout_seconds,
    )
    store = SqlAppointmentStore(config.database_url)

    return Engine(
        config=config,
        repository=repository,
        store=store,
        availability=AvailabilityService(
            repository=repository,
            gateway=gateway,
            default_days_ahead=config.defaults.days_ahead,
        ),
        booking=BookingService(
            repository=repository,
            gateway=gateway,
            store=store,
            persist_timeout_seconds=config.defaults.step_timeout_seconds,
        ),
    )


def _fail(error: BookingEngineError) -> None:
    console.print(f"[bold red]Error ({error.code}):[/bold red] {error}")
    raise typer.Exit(1)


def _parse_answers(answers: List[str]) -> dict:
    parsed = {}
    for item in answers:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise InvalidInputError(f"Intake answer must look like key=value, got {item!r}")
        parsed[key.strip()] = value.strip()
    return parsed


@app.command()
def dates(
    agent_id: Annotated[str, typer.Argument(help="Agent id from the config file.")],
    days_ahead: Annotated[Optional[int], typer.Option("--days-ahead", "-d", help="Look-ahead window in days.")] = None,
    timezone: TimezoneOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    List upcoming dates on which the agent has weekly availability.

    Examples:

        slotbooker dates clinic-front-desk
        slotbooker dates clinic-front-desk --days-ahead 7 --timezone Europe/Rome
    """
    _configure_logging(verbose)
    try:
        engine = _build_engine(config_file, mock, mock_data)
        listing = asyncio.run(
            engine.availability.list_available_dates(agent_id, days_ahead, timezone)
        )
    except BookingEngineError as e:
        _fail(e)

    if as_json:
        console.print_json(data=listing.to_dict())
        return

    if not listing.dates:
        console.print("[yellow]⚠ No bookable dates in the look-ahead window.[/yellow]")
        return

    console.print(f"[bold green]✓ {len(listing.dates)} bookable date(s)[/bold green] ({listing.timezone})\n")
    for day in listing.dates:
        console.print(f"  {day}")
    console.print()


@app.command()
def slots(
    agent_id: Annotated[str, typer.Argument(help="Agent id from the config file.")],
    day: Annotated[str, typer.Argument(help="Date to inspect (YYYY-MM-DD).")],
    timezone: TimezoneOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    List free slots on one date, filtered by the calendar's busy times.
    """
    _configure_logging(verbose)
    try:
        engine = _build_engine(config_file, mock, mock_data)
        listing = asyncio.run(engine.availability.list_available_slots(agent_id, day, timezone))
    except BookingEngineError as e:
        _fail(e)

    if as_json:
        console.print_json(data=listing.to_dict())
        return

    if not listing.slots:
        console.print(f"[yellow]⚠ No free slots on {listing.date}.[/yellow]")
        return

    table = Table(
        title=f"Free slots on {listing.date} ({listing.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Local", style="bold yellow")
    table.add_column("Start (UTC)", style="dim")
    table.add_column("End (UTC)", style="dim")

    for slot in listing.slots:
        table.add_row(
            f"{slot.local_start.format('HH:mm')} – {slot.local_end.format('HH:mm')}",
            slot.start_utc.to_iso8601_string(),
            slot.end_utc.to_iso8601_string(),
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    agent_id: Annotated[str, typer.Argument(help="Agent id from the config file.")],
    start: Annotated[str, typer.Argument(help="Start as ISO-8601 (offset optional).")],
    end: Annotated[str, typer.Argument(help="End as ISO-8601 (offset optional).")],
    email: Annotated[Optional[str], typer.Option("--email", help="Attendee email.")] = None,
    name: Annotated[Optional[str], typer.Option("--name", help="Attendee name.")] = None,
    phone: Annotated[Optional[str], typer.Option("--phone", help="Attendee phone.")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Free-text notes for the event.")] = None,
    title: Annotated[Optional[str], typer.Option("--title", help="Event title.")] = None,
    answer: Annotated[Optional[List[str]], typer.Option("--answer", "-a", help="Intake answer as key=value (repeatable).")] = None,
    timezone: TimezoneOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    mock_data: MockDataOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Book an appointment after re-checking the calendar for conflicts.

    Examples:

        slotbooker book clinic-front-desk 2024-11-25T09:00:00Z 2024-11-25T09:30:00Z --email ada@example.com
        slotbooker book clinic-front-desk 2024-11-25T09:00 2024-11-25T09:30 -a reason=checkup --mock
    """
    _configure_logging(verbose)
    try:
        intake_answers = _parse_answers(answer or [])
        engine = _build_engine(config_file, mock, mock_data)
        confirmation = asyncio.run(
            engine.booking.book_appointment(
                agent_id,
                start,
                end,
                attendee=email,
                notes=notes,
                intake_answers=intake_answers,
                timezone_override=timezone,
                title=title,
                name=name,
                phone=phone,
            )
        )
    except BookingEngineError as e:
        _fail(e)

    if as_json:
        console.print_json(data=confirmation.to_dict())
        return

    console.print(Panel.fit(
        f"[bold green]✓ Appointment confirmed[/bold green]\n\n"
        f"[bold]Appointment:[/bold] {confirmation.appointment_id}\n"
        f"[bold]Calendar event:[/bold] {confirmation.external_event_id}",
        title="Booking"
    ))


@app.command()
def appointments(
    agent_id: Annotated[str, typer.Argument(help="Agent id from the config file.")],
    config_file: ConfigOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    List appointments stored for an agent.
    """
    _configure_logging(verbose)
    try:
        config = AppConfig.load_from_yaml(config_file or get_default_config_path())
        records = SqlAppointmentStore(config.database_url).list_for_agent(agent_id)
    except BookingEngineError as e:
        _fail(e)

    if as_json:
        console.print_json(data=[
            {
                "id": record.id,
                "startUtc": record.start_time.to_iso8601_string(),
                "endUtc": record.end_time.to_iso8601_string(),
                "status": record.status.value,
                "externalEventId": record.external_event_id,
            }
            for record in records
        ])
        return

    if not records:
        console.print("[yellow]No appointments stored for this agent.[/yellow]")
        return

    table = Table(title=f"Appointments of {agent_id}", show_header=True, header_style="bold cyan")
    table.add_column("Start (UTC)", style="bold yellow")
    table.add_column("End (UTC)")
    table.add_column("Status")
    table.add_column("Event id", style="dim")

    for record in records:
        table.add_row(
            record.start_time.to_iso8601_string(),
            record.end_time.to_iso8601_string(),
            record.status.value,
            record.external_event_id or "-",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def check_calendar(
    agent_id: Annotated[str, typer.Argument(help="Agent id from the config file.")],
    config_file: ConfigOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
):
    """
    Validate the calendar connection that would serve an agent.
    """
    _configure_logging(verbose)
    try:
        config = AppConfig.load_from_yaml(config_file or get_default_config_path())
        connections = asyncio.run(ConfigAgentRepository(config).load_calendar_connections(agent_id))
    except BookingEngineError as e:
        _fail(e)

    connection = pick_calendar_connection(connections)
    validation = validate_calendar_connection(connection)

    if as_json:
        console.print_json(data={
            "ok": validation.ok,
            "issues": validation.issues,
            "fatalIssues": validation.fatal_issues,
        })
        if not validation.ok:
            raise typer.Exit(1)
        return

    if validation.ok:
        issues = ", ".join(validation.issues) or "none"
        console.print(Panel.fit(
            f"[bold green]✓ Calendar connection usable[/bold green]\n\n"
            f"[bold]Provider:[/bold] {connection.provider.value}\n"
            f"[bold]Account:[/bold] {connection.account_email or 'N/A'}\n"
            f"[bold]Calendar:[/bold] {connection.calendar_id}\n"
            f"[bold]Notes:[/bold] {issues}",
            title="✓ Connection check"
        ))
        return

    console.print(f"\n[bold red]✗ Calendar connection unusable:[/bold red] {', '.join(validation.fatal_issues)}\n")
    raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
