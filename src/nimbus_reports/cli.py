"""CLI interface for nimbus-reports."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from .config import AppConfig, load_config
from .errors import ReportError
from .export import get_exporter
from .logging_utils import redact_token, setup_logging
from .progress import ProgressChannel, ProgressEvent
from .reports import ReportEngine, ReportFilters, ReportResult

app = typer.Typer(
    name="nimbus-reports",
    help="Run Nimbus OData reports and export them to spreadsheets",
    no_args_is_help=True,
)
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file"),
]
OutputOption = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Output directory (default from config)"),
]
FormatOption = Annotated[
    str | None,
    typer.Option("--format", help="Export format: xlsx or csv (default from config)"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
FromOption = Annotated[
    str | None,
    typer.Option("--from", help="Start date (e.g., '2024-01-01', '30d' or 'today')"),
]
ToOption = Annotated[
    str | None,
    typer.Option("--to", help="End date (e.g., '2024-01-31' or 'today')"),
]
LocationOption = Annotated[
    int | None,
    typer.Option("--location", help="Restrict to a location ID"),
]


def get_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from file and environment."""
    try:
        return load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1) from None


def run_async(coro: Any) -> Any:
    """Run an async function synchronously."""
    return asyncio.run(coro)


class ReportProgressReporter:
    """Live progress display for report runs using Rich.

    Concurrent fetches (the UAT extract) report under their own prefixed
    names, so one line is kept per name.
    """

    def __init__(self, live: Live):
        self.live = live
        self._lines: dict[str, str] = {}

    def __call__(self, event: ProgressEvent) -> None:
        self._lines[event.report] = event.message
        self._render()

    def _render(self) -> None:
        lines = []
        for name, message in self._lines.items():
            line = Text("  ⠋ ", style="bold blue")
            line.append(Text(name, style="cyan"))
            line.append(f"  {message}")
            lines.append(line)
        self.live.update(Text("\n").join(lines) if lines else Text("  Starting…", style="dim"))


def _run_report(
    config: AppConfig,
    run: Callable[[ReportEngine], Awaitable[ReportResult]],
    output: Path | None,
    fmt: str | None,
    verbose: bool,
) -> ReportResult:
    """Run one report with live progress, print its summary and export it."""
    session = config.nimbus.to_session()
    setup_logging(verbose, console=console, secret=session.secret)

    channel = ProgressChannel()
    engine = ReportEngine(session, fetch=config.fetch, progress=channel)

    async def _execute() -> ReportResult:
        with Live(console=console, refresh_per_second=4, transient=True) as live:
            unsubscribe = channel.subscribe(ReportProgressReporter(live))
            try:
                return await run(engine)
            finally:
                unsubscribe()
                channel.close()

    try:
        result = run_async(_execute())
    except ReportError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1) from None

    _print_summary(result)
    _export(result, config, output, fmt)
    return result


def _print_summary(result: ReportResult) -> None:
    table = Table(title=result.report_name.replace("_", " "))
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for key, value in result.summary.items():
        table.add_row(key.replace("_", " ").title(), f"{value:,}")
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    console.print(table)
    console.print(f"[green]✓[/green] {result.message}")
    if result.filters_applied:
        console.print(f"[dim]Filters: {result.filters_applied}[/dim]")


def _export(result: ReportResult, config: AppConfig, output: Path | None, fmt: str | None) -> None:
    fmt = (fmt or config.export.format).lower()
    try:
        exporter = get_exporter(fmt, output or config.export.output_dir)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None

    if result.is_multi_sheet:
        export_result = exporter.export_sheets(result.sheets, result.report_name)
    else:
        export_result = exporter.export(result.rows, result.report_name, result.columns)

    if export_result.success:
        console.print(f"[green]✓[/green] {export_result.message}")
    else:
        console.print(f"[red]✗ {export_result.message}[/red]")
        raise typer.Exit(1)


@app.command()
def verify(
    config_path: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Verify the connection to the Nimbus OData API."""
    config = get_config(config_path)
    session = config.nimbus.to_session()
    setup_logging(verbose, console=console, secret=session.secret)
    engine = ReportEngine(session, fetch=config.fetch)

    console.print("[bold]Verifying API connection...[/bold]\n")

    try:
        connected = run_async(engine.verify())
    except ReportError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1) from None

    table = Table(title="Connection Status")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="green")
    status = "[green]✓ Connected[/green]" if connected else "[red]✗ No data returned[/red]"
    table.add_row(session.odata_base, status)
    console.print(table)

    if not connected:
        raise typer.Exit(1)


@app.command("cost-codes")
def cost_codes(
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
    active_only: Annotated[
        bool,
        typer.Option("--active-only", help="Only query active cost codes"),
    ] = False,
    invalid_only: Annotated[
        bool,
        typer.Option("--invalid-only", help="Only export cost codes with issues"),
    ] = False,
) -> None:
    """Validate cost codes (delimiter, validity window, active flag)."""
    config = get_config(config_path)
    filters = ReportFilters.from_cli_args(active_only=active_only, invalid_only=invalid_only)
    _run_report(config, lambda engine: engine.run_cost_codes(filters), output, fmt, verbose)


@app.command("security-roles")
def security_roles(
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
    active_only: Annotated[
        bool,
        typer.Option("--active-only/--include-inactive", help="Only query active users"),
    ] = True,
    rosterable_only: Annotated[
        bool,
        typer.Option("--rosterable-only", help="Only export rosterable users"),
    ] = False,
) -> None:
    """List users with their security roles and job roles."""
    config = get_config(config_path)
    filters = ReportFilters.from_cli_args(active_only=active_only, rosterable_only=rosterable_only)
    _run_report(config, lambda engine: engine.run_security_roles(filters), output, fmt, verbose)


def _date_filters(from_date: str | None, to_date: str | None, location: int | None = None) -> ReportFilters:
    try:
        return ReportFilters.from_cli_args(from_date=from_date, to_date=to_date, location=location)
    except ReportError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from None


@app.command("deleted-agreements")
def deleted_agreements(
    from_date: FromOption = None,
    to_date: ToOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List agreements deleted from shifts in a date range."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date)
    _run_report(config, lambda engine: engine.run_deleted_agreements(filters), output, fmt, verbose)


@app.command("early-approvals")
def early_approvals(
    from_date: FromOption = None,
    to_date: ToOption = None,
    location: LocationOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List timesheets approved before the shift started."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date, location)
    _run_report(config, lambda engine: engine.run_early_approvals(filters), output, fmt, verbose)


@app.command("missing-job-roles")
def missing_job_roles(
    from_date: FromOption = None,
    to_date: ToOption = None,
    location: LocationOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List shifts in a date range that have no job role."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date, location)
    _run_report(config, lambda engine: engine.run_missing_job_roles(filters), output, fmt, verbose)


@app.command("activities")
def activities(
    from_date: FromOption = None,
    to_date: ToOption = None,
    location: LocationOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List timetabled shifts, flagging those whose activity is not a TT activity."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date, location)
    _run_report(config, lambda engine: engine.run_activities(filters), output, fmt, verbose)


@app.command("missing-activities")
def missing_activities(
    from_date: FromOption = None,
    to_date: ToOption = None,
    location: LocationOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List shifts in a date range that have no activity."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date, location)
    _run_report(config, lambda engine: engine.run_missing_activities(filters), output, fmt, verbose)


@app.command("change-history")
def change_history(
    from_date: FromOption = None,
    to_date: ToOption = None,
    location: LocationOption = None,
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List shift changes made in a date range."""
    config = get_config(config_path)
    filters = _date_filters(from_date, to_date, location)
    _run_report(config, lambda engine: engine.run_change_history(filters), output, fmt, verbose)


@app.command("uat-extract")
def uat_extract(
    config_path: ConfigOption = None,
    output: OutputOption = None,
    fmt: FormatOption = None,
    verbose: VerboseOption = False,
    active_only: Annotated[
        bool,
        typer.Option("--active-only/--include-inactive", help="Only extract active records"),
    ] = True,
) -> None:
    """Export user profiles and all related records, one sheet per entity."""
    config = get_config(config_path)
    filters = ReportFilters.from_cli_args(active_only=active_only)
    _run_report(config, lambda engine: engine.run_uat_extract(filters), output, fmt, verbose)


@app.command()
def config_show(
    config_path: ConfigOption = None,
) -> None:
    """Show current configuration (with secrets masked)."""
    config = get_config(config_path)
    nimbus = config.nimbus

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Base URL", nimbus.base_url or "[red]Not set[/red]")
    table.add_row("Auth Mode", nimbus.auth_mode.value)
    if nimbus.auth_mode.value == "apptoken":
        table.add_row("Username", nimbus.username or "[red]Not set[/red]")
        token = nimbus.app_token
    else:
        table.add_row("User ID", str(nimbus.user_id) if nimbus.user_id is not None else "[red]Not set[/red]")
        token = nimbus.auth_token
    table.add_row("Token", redact_token(token) if token else "[red]Not set[/red]")
    table.add_row("Page Size", str(config.fetch.page_size))
    table.add_row("Max Pages", str(config.fetch.max_pages) if config.fetch.max_pages else "unlimited")
    table.add_row("Retries", str(config.fetch.max_retries))
    table.add_row("Output", f"{config.export.output_dir} ({config.export.format})")

    console.print(table)


if __name__ == "__main__":
    app()
