"""Cadence invoke and reset-errors commands - Drive the schedule executor.

Both commands go through the same trigger handler a scheduler would call,
so authorization and status handling match the external trigger surface.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from cadence_cli.cli.error_handler import (
    CadenceError,
    EngineError,
    InvocationFailedError,
    StorageError,
    UnauthorizedError,
    handle_errors,
)
from cadence_cli.cli.exit_codes import ExitCode
from cadence_cli.cli.output import format_duration_ms, print_json, print_result
from cadence_cli.config import CadenceConfig, load_config
from cadence_cli.executor.results import InvocationSummary
from cadence_cli.executor.trigger import TriggerHandler, TriggerResponse

console = Console()
logger = logging.getLogger(__name__)


def build_store(config: CadenceConfig):
    """Open the SQL document store, creating tables on first use.

    Raises:
        StorageError: If the database cannot be opened
    """
    from sqlalchemy.exc import SQLAlchemyError

    from cadence_cli.database.connection import create_tables
    from cadence_cli.database.document_store import SqlDocumentStore

    try:
        create_tables(config)
    except SQLAlchemyError as e:
        raise StorageError(
            "Cannot open the document database",
            details={"url": config.database_url, "reason": str(e)},
        ) from e
    return SqlDocumentStore(config)


@asynccontextmanager
async def open_trigger(config: CadenceConfig) -> AsyncIterator[TriggerHandler]:
    """Wire store, engine and controller into a trigger handler.

    The engine is closed when the context exits.
    """
    from cadence_cli.engine import client
    from cadence_cli.executor.controller import InvocationController

    store = build_store(config)
    try:
        engine = client.create_execution_engine(
            config.engine.url,
            api_key=config.engine.api_key,
            timeout=config.engine.timeout,
        )
    except ValueError as e:
        raise EngineError(str(e)) from e

    try:
        controller = InvocationController(store, engine, config.executor)
        yield TriggerHandler(controller, config.trigger)
    finally:
        await engine.close()


def _authorization(config: CadenceConfig, token: Optional[str]) -> Optional[str]:
    secret = token or config.trigger.cron_secret
    return f"Bearer {secret}" if secret else None


def _print_summary(summary: InvocationSummary) -> None:
    if summary.success:
        print_result(True, summary.message or "Invocation completed")
    else:
        print_result(False, summary.error or summary.message or "Invocation failed")

    table = Table(title="Invocation Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow")
    rows = [
        ("Documents scanned", f"{summary.documents_scanned} of {summary.total_documents}"),
        ("Documents updated", summary.documents_updated),
        ("Schedules processed", summary.schedules_processed),
        ("Schedules executed", summary.schedules_executed),
        ("Schedules failed", summary.schedules_failed),
        ("Schedules skipped", summary.schedules_skipped),
        ("Schedules suspended", summary.schedules_suspended),
        ("Schedules with errors", summary.schedules_with_errors),
        ("Disabled schedules", summary.disabled_schedules),
        ("Validation errors", summary.validation_errors),
        ("Infrastructure errors", summary.infrastructure_errors),
        ("Execution time", format_duration_ms(summary.execution_time)),
    ]
    for name, value in rows:
        table.add_row(name, str(value))
    console.print(table)

    if summary.execution_results:
        results = Table(title="Executions")
        results.add_column("Document", style="cyan")
        results.add_column("Schedule", style="magenta")
        results.add_column("Status", style="bold")
        results.add_column("Time")
        results.add_column("Error")
        for result in summary.execution_results:
            results.add_row(
                result.document_id,
                result.schedule_name or result.schedule_id,
                "[green]success[/green]" if result.success else "[red]failed[/red]",
                format_duration_ms(result.execution_time),
                result.error or "",
            )
        console.print(results)

    if summary.issues:
        console.print("[bold yellow]Issues:[/bold yellow]")
        for issue in summary.issues:
            where = "/".join(p for p in (issue.document_id, issue.schedule_id) if p)
            prefix = f"{where}: " if where else ""
            console.print(f"  [dim]{issue.category.value}[/dim] {prefix}{issue.message}")


def _json_mode(json_output: bool) -> bool:
    from cadence_cli.main import is_json

    return json_output or is_json()


def _check_status(response: TriggerResponse) -> None:
    if response.status_code == 401:
        raise UnauthorizedError("Unauthorized: trigger token does not match the cron secret")


@handle_errors
def invoke(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        envvar="CADENCE_TRIGGER_TOKEN",
        help="Trigger secret (defaults to trigger.cron_secret from configuration).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output the invocation summary as JSON.",
    ),
) -> None:
    """Run one invocation: execute every schedule that is due now.

    Exits non-zero when any schedule failed or the invocation could not
    complete.

    Example:
        cadence invoke
        cadence invoke --json
    """
    config = load_config(config_file)

    async def run() -> TriggerResponse:
        async with open_trigger(config) as handler:
            return await handler.handle(None, _authorization(config, token))

    response = asyncio.run(run())
    _check_status(response)

    if _json_mode(json_output):
        print_json(response.body)
    elif response.summary is not None:
        _print_summary(response.summary)

    if not response.body.get("success", False):
        raise InvocationFailedError(
            response.body.get("error") or "Invocation finished with failures"
        )


@handle_errors
def reset_errors(
    document_id: str = typer.Argument(
        ...,
        help="Document whose schedules should be reset.",
    ),
    schedule: Optional[str] = typer.Option(
        None,
        "--schedule",
        "-s",
        help="Reset only this schedule (default: all schedules of the document).",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        envvar="CADENCE_TRIGGER_TOKEN",
        help="Trigger secret (defaults to trigger.cron_secret from configuration).",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output the result as JSON.",
    ),
) -> None:
    """Clear error counts so suspended schedules run again.

    Example:
        cadence reset-errors doc-123
        cadence reset-errors doc-123 --schedule daily-report
    """
    config = load_config(config_file)
    body = {"action": "reset-errors", "documentId": document_id}
    if schedule:
        body["scheduleId"] = schedule

    async def run() -> TriggerResponse:
        async with open_trigger(config) as handler:
            return await handler.handle(body, _authorization(config, token))

    response = asyncio.run(run())
    _check_status(response)

    if _json_mode(json_output):
        print_json(response.body)

    if not response.ok:
        raise CadenceError(
            response.body.get("error") or "Failed to reset errors",
            exit_code=ExitCode.from_status(response.status_code),
        )

    if not _json_mode(json_output):
        print_result(True, response.body["message"], {
            "Document": response.body["documentId"],
            "Schedule": response.body["scheduleId"],
        })
