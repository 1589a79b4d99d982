"""Tests for the SQL document store and repository."""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator

import pytest

from cadence_cli.config import CadenceConfig
from cadence_cli.database.connection import create_tables, get_db_path, get_db_session, reset_engine
from cadence_cli.database.document_store import SqlDocumentStore
from cadence_cli.database.models import Document as DocumentRow
from cadence_cli.database.repositories import DocumentRepository


@pytest.fixture
def config(tmp_path: Path) -> Generator[CadenceConfig, None, None]:
    reset_engine()
    config = CadenceConfig(config_dir=tmp_path, data_dir=tmp_path / "data")
    create_tables(config)
    yield config
    reset_engine()


class TestConnection:
    def test_db_path_from_url(self, tmp_path: Path) -> None:
        config = CadenceConfig(data_dir=tmp_path)
        assert get_db_path(config) == tmp_path / "cadence.db"

    def test_db_path_for_memory_and_servers(self) -> None:
        assert get_db_path(CadenceConfig(database_url="sqlite:///:memory:")) is None
        assert get_db_path(CadenceConfig(database_url="postgresql://localhost/cadence")) is None

    def test_create_tables_creates_file(self, config: CadenceConfig) -> None:
        assert get_db_path(config).exists()


class TestDocumentRepository:
    """Test repository queries."""

    def test_upsert_inserts_then_replaces(self, config: CadenceConfig) -> None:
        with get_db_session(config) as session:
            repo = DocumentRepository(session)
            repo.upsert("d1", '{"schedules": []}', user_id="u1", title="First", metadata={"a": 1})
            created_at = repo.get_by_id("d1").created_at

            repo.upsert("d1", '{"schedules": [{}]}', user_id="u1", title="Second")
            row = repo.get_by_id("d1")

            assert repo.count() == 1
            assert row.title == "Second"
            assert row.doc_metadata == {}
            assert row.schedule_count == 1
            assert row.created_at == created_at

    def test_get_all_in_arrival_order(self, config: CadenceConfig) -> None:
        base = datetime(2024, 1, 1)
        with get_db_session(config) as session:
            session.add(DocumentRow(id="late", content="{}", created_at=base + timedelta(hours=2)))
            session.add(DocumentRow(id="early", content="{}", created_at=base))
            session.add(DocumentRow(id="middle", content="{}", created_at=base + timedelta(hours=1)))

        with get_db_session(config) as session:
            repo = DocumentRepository(session)
            assert [row.id for row in repo.get_all()] == ["early", "middle", "late"]
            assert [row.id for row in repo.get_all(limit=1, offset=1)] == ["middle"]

    def test_get_missing(self, config: CadenceConfig) -> None:
        with get_db_session(config) as session:
            assert DocumentRepository(session).get_by_id("nope") is None

    def test_to_dict(self, config: CadenceConfig) -> None:
        with get_db_session(config) as session:
            row = DocumentRepository(session).upsert("d1", "not json", user_id="u1", title="Broken")
            data = row.to_dict()
        assert data["id"] == "d1"
        assert data["schedules"] == 0
        assert data["kind"] == "agent"
        assert data["metadata"] == {}


class TestSqlDocumentStore:
    """Test the async store over SQLite."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, config: CadenceConfig) -> None:
        store = SqlDocumentStore(config)
        body = json.dumps({"schedules": [{"id": "s1"}]})

        await store.save_or_update_document(
            id="d1",
            content=body,
            user_id="u1",
            title="Agent",
            metadata={"lastScheduleExecution": "2024-01-02T00:05:00.000Z"},
        )

        documents = await store.get_all_documents()
        assert len(documents) == 1
        document = documents[0]
        assert document.id == "d1"
        assert document.content == body
        assert document.user_id == "u1"
        assert document.kind == "agent"
        assert document.metadata == {"lastScheduleExecution": "2024-01-02T00:05:00.000Z"}

    @pytest.mark.asyncio
    async def test_get_document(self, config: CadenceConfig) -> None:
        store = SqlDocumentStore(config)
        await store.save_or_update_document("d1", "{}", "u1", "Agent")

        assert (await store.get_document("d1")).title == "Agent"
        assert await store.get_document("missing") is None

    @pytest.mark.asyncio
    async def test_empty_store(self, config: CadenceConfig) -> None:
        assert await SqlDocumentStore(config).get_all_documents() == []

    @pytest.mark.asyncio
    async def test_custom_session_factory(self, config: CadenceConfig) -> None:
        opened = []

        def factory():
            opened.append(True)
            return get_db_session(config)

        store = SqlDocumentStore(session_factory=factory)
        await store.get_all_documents()
        assert opened == [True]
