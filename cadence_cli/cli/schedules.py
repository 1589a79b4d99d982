"""Cadence schedules command - Inspect schedules and cron patterns."""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console

from cadence_cli.cli.error_handler import ValidationError, handle_errors
from cadence_cli.cli.output import print_json, print_table

app = typer.Typer(help="Inspect schedules embedded in documents.")
console = Console()


def _schedule_rows(config: Any, document_id: Optional[str], now: datetime) -> List[Dict[str, Any]]:
    from cadence_cli.database.connection import create_tables, get_db_session
    from cadence_cli.database.document_store import to_document
    from cadence_cli.database.repositories import DocumentRepository
    from cadence_cli.executor.due_check import DueCheckPolicy
    from cadence_cli.executor.models import DocumentParseError, ParsedDocument, format_timestamp

    create_tables(config)
    with get_db_session(config) as session:
        repo = DocumentRepository(session)
        if document_id:
            row = repo.get_by_id(document_id)
            documents = [to_document(row)] if row is not None else []
        else:
            documents = [to_document(row) for row in repo.get_all()]

    policy = DueCheckPolicy(
        max_error_count=config.executor.max_error_count,
        error_reset_hours=config.executor.error_reset_hours,
        bootstrap_lookback_hours=config.executor.bootstrap_lookback_hours,
    )

    rows: List[Dict[str, Any]] = []
    for document in documents:
        try:
            parsed = ParsedDocument.parse(document)
        except DocumentParseError as e:
            rows.append({"document": document.id, "status": f"invalid document: {e}"})
            continue
        if parsed is None:
            continue

        for schedule in parsed.schedules:
            check = policy.is_due(schedule, now)
            if check.suspended:
                status = "suspended"
            elif check.error:
                status = f"error: {check.error}"
            elif check.should_run:
                status = "due"
            else:
                status = "waiting"

            interval = schedule.interval
            rows.append({
                "document": document.id,
                "schedule": schedule.id,
                "name": schedule.name,
                "pattern": interval.pattern if interval else None,
                "timezone": interval.timezone if interval else None,
                "active": interval.active if interval else False,
                "errors": schedule.error_count,
                "last_processed": schedule.last_processed_at,
                "next_due": format_timestamp(check.next_due) if check.next_due else None,
                "status": status,
            })
    return rows


@app.command("list")
@handle_errors
def list_schedules(
    document: Optional[str] = typer.Option(
        None,
        "--document",
        "-d",
        help="Only show schedules of this document.",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format.",
    ),
) -> None:
    """List schedules and whether each one is due right now.

    Example:
        cadence schedules list
        cadence schedules list --document doc-123
    """
    from cadence_cli.config import load_config
    from cadence_cli.executor.models import utcnow

    config = load_config(config_file)
    rows = _schedule_rows(config, document, utcnow())

    if json_output:
        print_json(rows)
        return

    if not rows:
        console.print("[yellow]No schedules found[/yellow]")
        return

    print_table(
        rows,
        [
            "document", "schedule", "name", "pattern", "timezone", "active",
            "errors", "last_processed", "next_due", "status",
        ],
        title="Schedules",
        column_styles={"document": "cyan", "schedule": "magenta", "pattern": "green"},
    )


@app.command("next")
@handle_errors
def next_runs(
    pattern: str = typer.Argument(
        ...,
        help="Cron pattern (e.g., '0 9 * * 1-5').",
    ),
    timezone: str = typer.Option(
        "UTC",
        "--timezone",
        "-z",
        help="IANA timezone the pattern is evaluated in.",
    ),
    count: int = typer.Option(
        5,
        "--count",
        "-n",
        help="Number of upcoming instants to show.",
        min=1,
        max=50,
    ),
) -> None:
    """Validate a cron pattern and show its next due instants.

    Example:
        cadence schedules next "0 9 * * 1-5" --timezone Europe/Berlin
    """
    from cadence_cli.executor.cron import next_due
    from cadence_cli.executor.models import format_timestamp, utcnow

    reference = utcnow()
    console.print(f"[bold]{pattern}[/bold] [dim]({timezone})[/dim]")
    for _ in range(count):
        due = next_due(pattern, timezone, reference)
        if not due.ok:
            raise ValidationError(due.error or f"Invalid cron pattern '{pattern}'")
        console.print(f"  {format_timestamp(due.instant)}")
        reference = due.instant
