"""Database persistence for Cadence CLI."""

from cadence_cli.database.connection import (
    create_tables,
    get_db_session,
    get_session_maker,
    init_engine,
    reset_engine,
)
from cadence_cli.database.document_store import SqlDocumentStore
from cadence_cli.database.repositories import DocumentRepository

__all__ = [
    "DocumentRepository",
    "SqlDocumentStore",
    "create_tables",
    "get_db_session",
    "get_session_maker",
    "init_engine",
    "reset_engine",
]
