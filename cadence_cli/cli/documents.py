"""Cadence documents command - Manage stored documents."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax

from cadence_cli.cli.error_handler import NotFoundError, ValidationError, handle_errors
from cadence_cli.cli.output import print_json, print_key_value, print_result, print_table

app = typer.Typer(help="Manage the documents that carry schedules.")
console = Console()


@app.command("import")
@handle_errors
def import_document(
    file: Path = typer.Argument(
        ...,
        help="JSON file holding the document body.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    document_id: Optional[str] = typer.Option(
        None,
        "--id",
        help="Document ID (default: file name without extension).",
    ),
    user: str = typer.Option(
        "",
        "--user",
        "-u",
        help="Owner of the document.",
    ),
    title: Optional[str] = typer.Option(
        None,
        "--title",
        help="Document title (default: the body's 'name' or 'Untitled').",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Import or replace a document from a JSON file.

    Example:
        cadence documents import agent.json
        cadence documents import agent.json --id doc-123 --user alice
    """
    from cadence_cli.config import load_config
    from cadence_cli.database.connection import create_tables, get_db_session
    from cadence_cli.database.repositories import DocumentRepository

    try:
        body = json.loads(file.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ValidationError(f"Invalid JSON in {file.name}: {e}") from e

    if not isinstance(body, dict):
        raise ValidationError("Document body must be a JSON object")

    config = load_config(config_file)
    create_tables(config)

    doc_id = document_id or file.stem
    name = body.get("name")
    doc_title = title or (name if isinstance(name, str) and name else "Untitled")

    with get_db_session(config) as session:
        repo = DocumentRepository(session)
        existing = repo.get_by_id(doc_id)
        repo.upsert(
            doc_id,
            json.dumps(body, indent=2),
            user_id=user,
            title=doc_title,
            metadata=dict(existing.doc_metadata or {}) if existing else {},
        )

    schedules = body.get("schedules")
    count = len(schedules) if isinstance(schedules, list) else 0
    print_result(True, f"{'Updated' if existing else 'Imported'} document {doc_id}", {
        "Title": doc_title,
        "Schedules": count,
    })


@app.command("list")
@handle_errors
def list_documents(
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
    """List stored documents in scan order.

    Example:
        cadence documents list
    """
    from cadence_cli.config import load_config
    from cadence_cli.database.connection import create_tables, get_db_session
    from cadence_cli.database.repositories import DocumentRepository

    config = load_config(config_file)
    create_tables(config)

    with get_db_session(config) as session:
        rows = [doc.to_dict() for doc in DocumentRepository(session).get_all()]

    if json_output:
        print_json(rows)
        return

    if not rows:
        console.print("[yellow]No documents found[/yellow]")
        return

    print_table(
        rows,
        ["id", "title", "user_id", "schedules", "updated_at"],
        title="Documents",
        column_styles={"id": "cyan", "title": "magenta"},
    )


@app.command("show")
@handle_errors
def show_document(
    document_id: str = typer.Argument(
        ...,
        help="Document ID.",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Show a document and its body.

    Example:
        cadence documents show doc-123
    """
    from cadence_cli.config import load_config
    from cadence_cli.database.connection import create_tables, get_db_session
    from cadence_cli.database.repositories import DocumentRepository

    config = load_config(config_file)
    create_tables(config)

    with get_db_session(config) as session:
        document = DocumentRepository(session).get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        info = document.to_dict()
        content = document.content or ""

    print_key_value({
        "ID": info["id"],
        "Title": info["title"],
        "User": info["user_id"] or None,
        "Kind": info["kind"],
        "Schedules": info["schedules"],
        "Last execution": info["metadata"].get("lastScheduleExecution"),
        "Updated": info["updated_at"],
    }, title="Document")
    console.print()
    if content:
        console.print(Syntax(content, "json"))
