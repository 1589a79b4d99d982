"""Database repositories for Cadence CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from cadence_cli.database.models import Document


class DocumentRepository:
    """
    Repository for document database operations.

    Documents are returned in arrival order (oldest first), which is the
    order the executor scans them in.
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def get_by_id(self, document_id: str) -> Optional[Document]:
        """
        Get document by ID.

        Args:
            document_id: Document ID

        Returns:
            Document if found, None otherwise
        """
        return self.session.query(Document).filter(Document.id == document_id).first()

    def get_all(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Document]:
        """
        Get all documents in arrival order with optional pagination.

        Args:
            limit: Maximum number of documents to return
            offset: Number of documents to skip

        Returns:
            List of documents
        """
        query = self.session.query(Document).order_by(
            Document.created_at.asc(), Document.id.asc()
        )

        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)

        return query.all()

    def upsert(
        self,
        document_id: str,
        content: Optional[str],
        user_id: str = "",
        title: str = "Untitled",
        kind: str = "agent",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Document:
        """
        Insert a document or replace the stored one.

        The whole row is replaced except for its creation time, so a
        rewritten document keeps its place in arrival order.

        Returns:
            The stored document
        """
        document = self.get_by_id(document_id)
        if document is None:
            document = Document(id=document_id)
            self.session.add(document)

        document.content = content
        document.user_id = user_id
        document.title = title
        document.kind = kind
        document.doc_metadata = dict(metadata or {})

        self.session.commit()
        self.session.refresh(document)
        return document

    def count(self) -> int:
        """
        Get total number of documents.

        Returns:
            Document count
        """
        return self.session.query(Document).count()
