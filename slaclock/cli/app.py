"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.json_event_source import JsonEventSource
from ..adapters.memory_store import InMemoryStore
from ..config import CONFIG_SUBSCRIPTION, AppConfig, get_default_config_path
from ..domain.business_time import BusinessTimeEngine
from ..domain.exceptions import SlaClockError
from ..domain.models import MILLIS_PER_MINUTE, Calendar, SlaState
from ..services.calendar_service import CalendarService
from ..services.evaluation import SlaEvaluationService
from ..services.sla_service import SlaRuleService

app = typer.Typer(
    name="slaclock",
    help="Measure SLAs in business time",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(config_file: Optional[Path]) -> tuple[AppConfig, InMemoryStore]:
    """
    Load the configuration and build the store from it.

    Without ``--config`` and without a ./config.yaml, built-in defaults apply.
    """
    config_path = config_file or get_default_config_path()
    if config_file is None and not config_path.exists():
        config = AppConfig()
    else:
        config = AppConfig.load_from_yaml(config_path)
    _configure_logging(config.log_level)
    return config, config.build_store()


def _select_calendar(store: InMemoryStore, name: Optional[str]) -> Calendar:
    if name:
        calendar = store.find_calendar_by_name(name)
        if calendar is None:
            console.print(f"[bold red]Error:[/bold red] Unknown calendar '{name}'")
            raise typer.Exit(1)
        return calendar
    configuration = store.get_configuration(CONFIG_SUBSCRIPTION)
    return store.get_calendar(configuration.calendar_id)


def _format_millis(millis: int) -> str:
    minutes = millis // MILLIS_PER_MINUTE
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _state_style(state: SlaState) -> str:
    if state.breached:
        return "bold red"
    if state.provisional:
        return "yellow"
    return "green"


@app.command()
def duration(
    start: Annotated[str, typer.Argument(help="Start instant, e.g. '2024-11-25 09:30'")],
    end: Annotated[str, typer.Argument(help="End instant")],
    calendar_name: Annotated[Optional[str], typer.Option("--calendar", help="Calendar name")] = None,
    config_file: ConfigOption = None,
):
    """
    Compute the business time between two instants.

    Examples:

        slaclock duration "2024-11-22 16:00" "2024-11-25 10:00"
        slaclock duration 2024-12-24 2024-12-27 --calendar France
    """
    try:
        _, store = _load(config_file)
        calendar = _select_calendar(store, calendar_name)

        from_ = pendulum.parse(start, tz=calendar.timezone)
        to = pendulum.parse(end, tz=calendar.timezone)
        millis = BusinessTimeEngine().business_millis_between(calendar, from_, to)

        console.print(
            f"[bold cyan]{calendar.name}[/bold cyan]: "
            f"{from_.format('DD.MM.YYYY HH:mm')} - {to.format('DD.MM.YYYY HH:mm')}"
        )
        console.print(f"[bold green]{_format_millis(millis)}[/bold green] business time ({millis} ms)")

    except (SlaClockError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def evaluate(
    history: Annotated[Path, typer.Argument(help="JSON export of issue histories")],
    issue_keys: Annotated[Optional[List[str]], typer.Argument(help="Issues to evaluate, all by default")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Evaluation time for running clocks")] = None,
    config_file: ConfigOption = None,
):
    """
    Evaluate the configured SLAs against issue histories.
    """
    try:
        config, store = _load(config_file)
        source = JsonEventSource(history, timezone=config.timezone)
        service = SlaEvaluationService(store, event_source=source)
        at = pendulum.parse(now, tz=config.timezone) if now else None

        table = Table(title="SLA", show_header=True, header_style="bold cyan")
        table.add_column("Issue", style="bold yellow")
        table.add_column("SLA")
        table.add_column("Status")
        table.add_column("Elapsed", justify="right")
        table.add_column("Remaining", justify="right")
        table.add_column("Breached")

        for key in issue_keys or source.issue_keys():
            states = asyncio.run(service.evaluate_issue(CONFIG_SUBSCRIPTION, key, now=at))
            for name, state in states.items():
                remaining = state.remaining_millis
                table.add_row(
                    key,
                    name,
                    state.status.value,
                    _format_millis(state.elapsed_millis),
                    "-" if remaining is None else _format_millis(remaining),
                    "yes" if state.breached else "no",
                    style=_state_style(state),
                )

        console.print()
        console.print(table)
        console.print()

    except (SlaClockError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def calendars(config_file: ConfigOption = None):
    """
    List the configured calendars.
    """
    try:
        _, store = _load(config_file)

        table = Table(title="Calendars", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold yellow")
        table.add_column("Timezone", style="dim")
        table.add_column("Business hours")
        table.add_column("Holidays", justify="right")

        for calendar in CalendarService(store).list_calendars():
            name = f"{calendar.name} (default)" if calendar.is_default else calendar.name
            table.add_row(
                name,
                calendar.timezone,
                ", ".join(str(r) for r in calendar.ranges),
                str(len(calendar.holidays)),
            )

        console.print()
        console.print(table)
        console.print()

    except (SlaClockError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def rules(config_file: ConfigOption = None):
    """
    List the configured SLA rules.
    """
    try:
        _, store = _load(config_file)

        table = Table(title="SLA rules", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold yellow")
        table.add_column("Start")
        table.add_column("Pause")
        table.add_column("Stop")
        table.add_column("Threshold", justify="right")

        for rule in SlaRuleService(store).list_rules(CONFIG_SUBSCRIPTION):
            table.add_row(
                rule.name,
                ", ".join(sorted(rule.start)),
                ", ".join(sorted(rule.pause)) or "-",
                ", ".join(sorted(rule.stop)),
                _format_millis(rule.threshold) if rule.threshold else "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (SlaClockError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slaclock[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
