"""Tests for folding execution results back into documents."""

import asyncio
import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from cadence_cli.executor.models import Document, ParsedDocument, ScheduleItem
from cadence_cli.executor.reconciler import OutcomeReconciler
from cadence_cli.executor.results import ErrorCategory, ExecutionResult
from cadence_cli.executor.store import InMemoryDocumentStore

NOW = datetime(2024, 1, 2, 0, 5, tzinfo=timezone.utc)
STAMP = "2024-01-02T00:05:00.000Z"


class StalledStore(InMemoryDocumentStore):
    async def save_or_update_document(self, id, content, user_id, title, kind="agent", metadata=None):
        await asyncio.sleep(5.0)


class FailingStore(InMemoryDocumentStore):
    async def save_or_update_document(self, id, content, user_id, title, kind="agent", metadata=None):
        raise RuntimeError("disk full")


def make_document(doc_id: str, schedules: List[Dict[str, Any]], **fields: Any) -> Document:
    return Document(
        id=doc_id,
        content=json.dumps({"name": "Agent", "schedules": schedules}),
        user_id="user-1",
        title=fields.pop("title", "Agent"),
        metadata=fields.pop("metadata", {"source": "import"}),
    )


def items_for(document: Document) -> List[ScheduleItem]:
    parsed = ParsedDocument.parse(document)
    return [ScheduleItem(document.id, schedule, parsed) for schedule in parsed.schedules]


def result(item: ScheduleItem, success: bool, error: str = None) -> ExecutionResult:
    return ExecutionResult(
        document_id=item.document_id,
        schedule_id=item.schedule_id,
        schedule_name=item.schedule.name,
        success=success,
        error=error,
        category=None if success else ErrorCategory.TRANSIENT,
    )


async def stored_schedules(store: InMemoryDocumentStore, doc_id: str) -> List[Dict[str, Any]]:
    document = await store.get_document(doc_id)
    return json.loads(document.content)["schedules"]


class TestReconcile:
    """Test schedule state updates and persistence."""

    @pytest.mark.asyncio
    async def test_success_clears_errors_and_advances_watermark(self) -> None:
        document = make_document("d1", [{"id": "s1", "errorCount": 2, "lastError": "old", "lastErrorAt": STAMP}])
        store = InMemoryDocumentStore([document])
        items = items_for(document)

        report = await OutcomeReconciler(store).reconcile(items, [result(items[0], True)], NOW)

        assert report.documents_updated == 1
        assert report.schedules_with_errors == 0
        schedule = (await stored_schedules(store, "d1"))[0]
        assert schedule["lastProcessedAt"] == STAMP
        assert schedule["errorCount"] == 0
        assert "lastError" not in schedule
        assert "lastErrorAt" not in schedule

    @pytest.mark.asyncio
    async def test_failure_increments_error_count(self) -> None:
        document = make_document("d1", [{"id": "s1", "errorCount": 2}])
        store = InMemoryDocumentStore([document])
        items = items_for(document)

        report = await OutcomeReconciler(store).reconcile(items, [result(items[0], False, "boom")], NOW)

        schedule = (await stored_schedules(store, "d1"))[0]
        assert schedule["errorCount"] == 3
        assert schedule["lastError"] == "boom"
        assert schedule["lastErrorAt"] == STAMP
        assert schedule["lastProcessedAt"] == STAMP
        assert report.schedules_with_errors == 1
        assert report.disabled_schedules == 1

    @pytest.mark.asyncio
    async def test_failure_without_message(self) -> None:
        document = make_document("d1", [{"id": "s1"}])
        store = InMemoryDocumentStore([document])
        items = items_for(document)

        await OutcomeReconciler(store).reconcile(items, [result(items[0], False)], NOW)
        assert (await stored_schedules(store, "d1"))[0]["lastError"] == "Unknown error"

    @pytest.mark.asyncio
    async def test_missing_result_counts_as_failure(self) -> None:
        document = make_document("d1", [{"id": "s1"}])
        store = InMemoryDocumentStore([document])
        items = items_for(document)

        report = await OutcomeReconciler(store).reconcile(items, [], NOW)

        schedule = (await stored_schedules(store, "d1"))[0]
        assert schedule["errorCount"] == 1
        assert schedule["lastError"] == "No execution result returned"
        assert len(report.missing_results) == 1
        assert report.issues[0].category == ErrorCategory.INFRASTRUCTURE

    @pytest.mark.asyncio
    async def test_results_matched_by_key_not_position(self) -> None:
        first = make_document("d1", [{"id": "s1"}])
        second = make_document("d2", [{"id": "s1"}])
        store = InMemoryDocumentStore([first, second])
        items = items_for(first) + items_for(second)

        results = [result(items[1], False, "second failed"), result(items[0], True)]
        await OutcomeReconciler(store).reconcile(items, results, NOW)

        assert (await stored_schedules(store, "d1"))[0]["errorCount"] == 0
        assert (await stored_schedules(store, "d2"))[0]["lastError"] == "second failed"

    @pytest.mark.asyncio
    async def test_one_write_per_document(self) -> None:
        """Test that untouched schedules and body keys survive the write."""
        document = make_document("d1", [{"id": "s1"}, {"id": "s2", "notes": "untouched"}, "junk"])
        store = InMemoryDocumentStore([document])
        items = items_for(document)[:1]

        await OutcomeReconciler(store).reconcile(items, [result(items[0], True)], NOW)

        assert store.writes == ["d1"]
        stored = await store.get_document("d1")
        body = json.loads(stored.content)
        assert body["name"] == "Agent"
        assert body["schedules"][1] == {"id": "s2", "notes": "untouched"}
        assert body["schedules"][2] == "junk"

    @pytest.mark.asyncio
    async def test_metadata_and_title(self) -> None:
        document = make_document("d1", [{"id": "s1"}], title="", metadata={"source": "import"})
        store = InMemoryDocumentStore([document])
        items = items_for(document)

        await OutcomeReconciler(store).reconcile(items, [result(items[0], True)], NOW)

        stored = await store.get_document("d1")
        assert stored.title == "Untitled"
        assert stored.kind == "agent"
        assert stored.user_id == "user-1"
        assert stored.metadata == {"source": "import", "lastScheduleExecution": STAMP}

    @pytest.mark.asyncio
    async def test_write_failure_is_reported(self) -> None:
        document = make_document("d1", [{"id": "s1"}])
        items = items_for(document)

        report = await OutcomeReconciler(FailingStore([document])).reconcile(
            items, [result(items[0], True)], NOW
        )

        assert report.documents_updated == 0
        assert report.write_failures == [("d1", "disk full")]
        assert report.issues[0].message == "Failed to update document: disk full"

    @pytest.mark.asyncio
    async def test_stalled_writes_share_one_budget(self) -> None:
        first = make_document("d1", [{"id": "s1"}])
        second = make_document("d2", [{"id": "s2"}])
        items = items_for(first) + items_for(second)
        reconciler = OutcomeReconciler(StalledStore([first, second]), write_timeout=0.2)

        started = time.monotonic()
        report = await reconciler.reconcile(items, [result(item, True) for item in items], NOW)
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert report.documents_updated == 0
        assert report.write_failures == [
            ("d1", "Database write timeout"),
            ("d2", "Database write timeout"),
        ]
