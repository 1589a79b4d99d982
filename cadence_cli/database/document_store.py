"""SQL-backed document store for the executor.

SQLAlchemy sessions are synchronous, so each store call runs in a worker
thread. That keeps the event loop free and lets the executor enforce its
load timeout on a slow database.
"""

import asyncio
import logging
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, List, Optional

from cadence_cli.config import CadenceConfig
from cadence_cli.database.connection import get_db_session
from cadence_cli.database.models import Document as DocumentRow
from cadence_cli.database.repositories import DocumentRepository
from cadence_cli.executor.models import DOCUMENT_KIND, Document
from cadence_cli.executor.store import DocumentStore

logger = logging.getLogger(__name__)


def to_document(row: DocumentRow) -> Document:
    return Document(
        id=row.id,
        content=row.content,
        user_id=row.user_id or "",
        title=row.title or "",
        kind=row.kind or DOCUMENT_KIND,
        metadata=dict(row.doc_metadata or {}),
    )


class SqlDocumentStore(DocumentStore):
    """Document store over the SQLAlchemy ``documents`` table.

    Example:
        store = SqlDocumentStore(config)
        documents = await store.get_all_documents()
    """

    def __init__(
        self,
        config: Optional[CadenceConfig] = None,
        session_factory: Optional[Callable[[], AbstractContextManager]] = None,
    ):
        """Initialize the store.

        Args:
            config: Configuration used to open sessions (global if omitted)
            session_factory: Callable returning a session context manager;
                overrides ``config``
        """
        self._session_factory = session_factory or (lambda: get_db_session(config))

    async def get_all_documents(self) -> List[Document]:
        return await asyncio.to_thread(self._get_all)

    async def get_document(self, document_id: str) -> Optional[Document]:
        return await asyncio.to_thread(self._get_one, document_id)

    async def save_or_update_document(
        self,
        id: str,
        content: str,
        user_id: str,
        title: str,
        kind: str = DOCUMENT_KIND,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await asyncio.to_thread(self._save, id, content, user_id, title, kind, metadata)

    def _get_all(self) -> List[Document]:
        with self._session_factory() as session:
            rows = DocumentRepository(session).get_all()
            return [to_document(row) for row in rows]

    def _get_one(self, document_id: str) -> Optional[Document]:
        with self._session_factory() as session:
            row = DocumentRepository(session).get_by_id(document_id)
            return to_document(row) if row is not None else None

    def _save(
        self,
        document_id: str,
        content: str,
        user_id: str,
        title: str,
        kind: str,
        metadata: Optional[Dict[str, Any]],
    ) -> None:
        with self._session_factory() as session:
            DocumentRepository(session).upsert(
                document_id,
                content,
                user_id=user_id,
                title=title,
                kind=kind,
                metadata=metadata,
            )
        logger.debug(f"Saved document {document_id}")
