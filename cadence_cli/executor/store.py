"""Document store boundary used by the executor."""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from cadence_cli.executor.models import DOCUMENT_KIND, Document

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Abstract persistence for documents.

    Writes replace the whole document and the last writer wins.
    """

    @abstractmethod
    async def get_all_documents(self) -> List[Document]:
        """Return every stored document in arrival order."""
        pass

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[Document]:
        """Return one document, or None if it does not exist."""
        pass

    @abstractmethod
    async def save_or_update_document(
        self,
        id: str,
        content: str,
        user_id: str,
        title: str,
        kind: str = DOCUMENT_KIND,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Insert or replace a document."""
        pass


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store for tests and embedding.

    Documents are copied on the way in and out so callers cannot mutate
    stored state behind the store's back.
    """

    def __init__(self, documents: Optional[List[Document]] = None) -> None:
        self._documents: Dict[str, Document] = {}
        for document in documents or []:
            self._documents[document.id] = copy.deepcopy(document)
        self.writes: List[str] = []

    async def get_all_documents(self) -> List[Document]:
        return [copy.deepcopy(d) for d in self._documents.values()]

    async def get_document(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def save_or_update_document(
        self,
        id: str,
        content: str,
        user_id: str,
        title: str,
        kind: str = DOCUMENT_KIND,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._documents[id] = Document(
            id=id,
            content=content,
            user_id=user_id,
            title=title,
            kind=kind,
            metadata=copy.deepcopy(metadata or {}),
        )
        self.writes.append(id)
        logger.debug(f"Stored document {id}")
