from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from mysql_capture.capture import TriggerManager
from mysql_capture.config import (
    DEFAULT_ACTIVITY_TABLE,
    DEFAULT_BACKOFF_SECONDS,
    DEFAULT_DIALECT,
    DEFAULT_KEY_SEPARATOR,
    DEFAULT_LOG_TABLE,
    DEFAULT_MAX_ATTEMPTS,
    ENV_DB_HOST,
    ENV_DB_NAME,
    ENV_DB_PASSWORD,
    ENV_DB_PORT,
    ENV_DB_USER,
    DatabaseSettings,
)
from mysql_capture.db.dialect import available_dialects, get_dialect
from mysql_capture.db.statements import build_install_statements
from mysql_capture.errors import CaptureError, PartialInstallError
from mysql_capture.logging_config import configure_logging
from mysql_capture.models import ExhaustionPolicy, RetryPolicy, TriggerSpec

app = typer.Typer(help="MySQL change capture trigger management")
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    host: str = typer.Option("localhost", envvar=ENV_DB_HOST, help="Database host"),
    port: int = typer.Option(3306, envvar=ENV_DB_PORT, help="Database port"),
    user: str = typer.Option("root", envvar=ENV_DB_USER, help="Database user"),
    password: str = typer.Option("", envvar=ENV_DB_PASSWORD, help="Database password"),
    database: str = typer.Option("", envvar=ENV_DB_NAME, help="Database name"),
    dialect: str = typer.Option(
        DEFAULT_DIALECT, help=f"Target server dialect ({', '.join(available_dialects())})"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
):
    """Manage capture procedures and triggers on a MySQL database."""
    try:
        configure_logging(level=log_level, json_format=json_logs)
    except CaptureError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    ctx.obj = {
        "settings": DatabaseSettings(
            host=host, port=port, user=user, password=password, database=database
        ),
        "dialect": dialect,
    }


def _manager(ctx: typer.Context) -> TriggerManager:
    try:
        return TriggerManager.connect(ctx.obj["settings"], ctx.obj["dialect"])
    except CaptureError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _build_spec(
    table: str,
    keys: list[str],
    trigger_name: Optional[str],
    log_table: str,
    activity_table: str,
    separator: str,
    exclude_own_activity: bool,
    max_attempts: int,
    backoff: float,
    on_exhaustion: ExhaustionPolicy,
    include_key_names: bool,
) -> TriggerSpec:
    try:
        return TriggerSpec(
            trigger_name=trigger_name or f"rr_{table}",
            table=table,
            keys=keys,
            log_table=log_table,
            activity_table=activity_table,
            key_separator=separator,
            exclude_own_activity=exclude_own_activity,
            retry_policy=RetryPolicy(
                max_attempts=max_attempts,
                backoff_seconds=backoff,
                on_exhaustion=on_exhaustion,
            ),
            include_key_names=include_key_names,
        )
    except CaptureError as e:
        console.print(f"[red]Invalid capture settings: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


TABLE_ARG = typer.Argument(..., help="Table to monitor")
KEY_OPT = typer.Option(..., "--key", "-k", help="Key column (repeat for composite keys)")
TRIGGER_NAME_OPT = typer.Option(None, "--trigger-name", help="Procedure name (default rr_<table>)")
LOG_TABLE_OPT = typer.Option(DEFAULT_LOG_TABLE, "--log-table", help="Change log table")
ACTIVITY_TABLE_OPT = typer.Option(DEFAULT_ACTIVITY_TABLE, "--activity-table", help="Activity table")
SEPARATOR_OPT = typer.Option(DEFAULT_KEY_SEPARATOR, "--separator", help="Composite key separator")
EXCLUDE_OPT = typer.Option(False, "--exclude-own-activity", help="Skip capture while the activity table has rows")
MAX_ATTEMPTS_OPT = typer.Option(DEFAULT_MAX_ATTEMPTS, "--max-attempts", help="Trigger retry ceiling")
BACKOFF_OPT = typer.Option(DEFAULT_BACKOFF_SECONDS, "--backoff", help="Seconds between trigger retries")
EXHAUSTION_OPT = typer.Option(ExhaustionPolicy.DROP, "--on-exhaustion", help="Behaviour once retries run out")
KEY_NAMES_OPT = typer.Option(False, "--include-key-names", help="Encode keys as name/value pairs")


@app.command()
def install(
    ctx: typer.Context,
    table: str = TABLE_ARG,
    keys: list[str] = KEY_OPT,
    trigger_name: Optional[str] = TRIGGER_NAME_OPT,
    log_table: str = LOG_TABLE_OPT,
    activity_table: str = ACTIVITY_TABLE_OPT,
    separator: str = SEPARATOR_OPT,
    exclude_own_activity: bool = EXCLUDE_OPT,
    max_attempts: int = MAX_ATTEMPTS_OPT,
    backoff: float = BACKOFF_OPT,
    on_exhaustion: ExhaustionPolicy = EXHAUSTION_OPT,
    include_key_names: bool = KEY_NAMES_OPT,
):
    """Install or replace change capture for a table."""
    spec = _build_spec(
        table, keys, trigger_name, log_table, activity_table, separator,
        exclude_own_activity, max_attempts, backoff, on_exhaustion, include_key_names,
    )
    with _manager(ctx) as manager:
        try:
            manager.install(spec)
        except PartialInstallError as e:
            console.print(f"[red]Install incomplete: {escape(e.message)}[/red]")
            console.print(f"Completed steps: {', '.join(e.completed)}")
            console.print("[yellow]Re-run install to restore the trigger set.[/yellow]")
            raise typer.Exit(code=1)
        except CaptureError as e:
            console.print(f"[red]Install failed: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)
    console.print(f"[green]Capture installed on {table} as {spec.trigger_name}[/green]")


@app.command("show-sql")
def show_sql(
    ctx: typer.Context,
    table: str = TABLE_ARG,
    keys: list[str] = KEY_OPT,
    trigger_name: Optional[str] = TRIGGER_NAME_OPT,
    log_table: str = LOG_TABLE_OPT,
    activity_table: str = ACTIVITY_TABLE_OPT,
    separator: str = SEPARATOR_OPT,
    exclude_own_activity: bool = EXCLUDE_OPT,
    max_attempts: int = MAX_ATTEMPTS_OPT,
    backoff: float = BACKOFF_OPT,
    on_exhaustion: ExhaustionPolicy = EXHAUSTION_OPT,
    include_key_names: bool = KEY_NAMES_OPT,
):
    """Print the statements install would run, without connecting."""
    spec = _build_spec(
        table, keys, trigger_name, log_table, activity_table, separator,
        exclude_own_activity, max_attempts, backoff, on_exhaustion, include_key_names,
    )
    try:
        dialect = get_dialect(ctx.obj["dialect"])
    except CaptureError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    for statement in build_install_statements(spec, dialect):
        console.print(f"-- {statement.step}", style="dim", markup=False)
        console.print(Syntax(statement.sql + ";", "sql", word_wrap=True))


@app.command()
def remove(
    ctx: typer.Context,
    trigger_name: str = typer.Argument(..., help="Procedure name of the installation"),
    table: str = typer.Argument(..., help="Monitored table"),
    if_exists: bool = typer.Option(False, "--if-exists", help="Do nothing if not installed"),
):
    """Remove capture triggers and procedure."""
    with _manager(ctx) as manager:
        try:
            if if_exists:
                if not manager.remove_if_exists(trigger_name, table):
                    console.print(f"No capture trigger {trigger_name} on {table}")
                    return
            else:
                manager.remove(trigger_name, table)
        except CaptureError as e:
            console.print(f"[red]Remove failed: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)
    console.print(f"[green]Removed {trigger_name} from {table}[/green]")


@app.command()
def status(
    ctx: typer.Context,
    trigger_name: str = typer.Argument(..., help="Procedure name of the installation"),
    table: str = typer.Argument(..., help="Monitored table"),
    activity_table: Optional[str] = typer.Option(None, "--activity-table", help="Also report activity state"),
):
    """Show whether capture is installed for a table."""
    with _manager(ctx) as manager:
        try:
            installed = manager.exists(trigger_name, table)
            active = None
            if activity_table:
                active = manager.activity(activity_table).is_active()
        except CaptureError as e:
            console.print(f"[red]Status check failed: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)

    result = Table(title="Capture Status")
    result.add_column("Property", style="cyan")
    result.add_column("Value", style="magenta")
    result.add_row("Trigger", trigger_name)
    result.add_row("Table", table)
    result.add_row("Installed", "yes" if installed else "no")
    if active is not None:
        result.add_row("Activity", "suppressing" if active else "idle")
    console.print(result)

    if not installed:
        raise typer.Exit(code=2)


@app.command("init-tables")
def init_tables(
    ctx: typer.Context,
    log_table: str = LOG_TABLE_OPT,
    activity_table: str = ACTIVITY_TABLE_OPT,
):
    """Create the change log and activity tables."""
    with _manager(ctx) as manager:
        try:
            manager.prepare_tables(log_table, activity_table)
        except CaptureError as e:
            console.print(f"[red]Table creation failed: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)
    console.print(f"[green]Tables ready: {log_table}, {activity_table}[/green]")


@app.command()
def log(
    ctx: typer.Context,
    log_table: str = LOG_TABLE_OPT,
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum entries to show"),
):
    """Show captured changes, oldest first."""
    with _manager(ctx) as manager:
        try:
            entries = manager.read_log(log_table, limit)
        except CaptureError as e:
            console.print(f"[red]Reading {log_table} failed: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)

    result = Table(title=f"Changes in {log_table}")
    result.add_column("Table")
    result.add_column("Type")
    result.add_column("Key")
    result.add_column("Original Key")
    result.add_column("Time")
    for entry in entries:
        result.add_row(
            entry.change_table,
            entry.change_type.value,
            entry.change_key or "",
            entry.change_org_key or "",
            str(entry.change_time),
        )
    console.print(result)


if __name__ == "__main__":
    app()
