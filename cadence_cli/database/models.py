"""
SQLAlchemy models for the Cadence CLI database.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, declarative_base

# Create base class for all models
Base = declarative_base()


class Document(Base):
    """
    Stored document model.

    The ``content`` column holds the JSON body of the document, including
    any schedules embedded under its ``schedules`` key. A write always
    replaces the whole body.
    """

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, default="", index=True)
    title: Mapped[str] = mapped_column(String, nullable=False, default="Untitled")
    kind: Mapped[str] = mapped_column(String, nullable=False, default="agent")
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # "metadata" is reserved on declarative classes
    doc_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def schedule_count(self) -> int:
        """Number of schedule entries in the body, 0 if it cannot be read."""
        try:
            body = json.loads(self.content or "")
        except ValueError:
            return 0
        schedules = body.get("schedules") if isinstance(body, dict) else None
        return len(schedules) if isinstance(schedules, list) else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert document to dictionary representation."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "kind": self.kind,
            "metadata": self.doc_metadata or {},
            "schedules": self.schedule_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
