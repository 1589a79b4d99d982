"""Tests for the trigger surface."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from cadence_cli.config import TriggerConfig
from cadence_cli.engine.client import EngineResponse, ExecutionEngine
from cadence_cli.executor.controller import InvocationController
from cadence_cli.executor.models import Document
from cadence_cli.executor.store import InMemoryDocumentStore
from cadence_cli.executor.trigger import TriggerHandler

NOW = datetime(2024, 1, 2, 0, 5, tzinfo=timezone.utc)


class OkEngine(ExecutionEngine):
    async def execute(self, request):
        return EngineResponse(success=True)


class BrokenStore(InMemoryDocumentStore):
    async def get_all_documents(self):
        raise ConnectionError("db down")


def make_controller(store=None) -> InvocationController:
    return InvocationController(store or InMemoryDocumentStore(), OkEngine(), clock=lambda: NOW)


def failing_document(*schedule_ids: str) -> Document:
    body = {"schedules": [
        {
            "id": schedule_id,
            "interval": {"pattern": "0 0 * * *", "timezone": "UTC", "active": True},
            "errorCount": 3,
            "lastError": "boom",
        }
        for schedule_id in schedule_ids or ("s1",)
    ]}
    return Document(id="d1", content=json.dumps(body), user_id="user-1", title="Agent")


class TestAuthorization:
    """Test bearer-secret checks."""

    def test_development_accepts_everything(self) -> None:
        handler = TriggerHandler(make_controller(), TriggerConfig(environment="development"))
        assert handler.is_authorized(None)

    def test_production_requires_secret(self) -> None:
        handler = TriggerHandler(
            make_controller(), TriggerConfig(environment="production", cron_secret="s3cret")
        )
        assert handler.is_authorized("Bearer s3cret")
        assert not handler.is_authorized("Bearer wrong")
        assert not handler.is_authorized("s3cret")
        assert not handler.is_authorized(None)

    def test_production_without_configured_secret(self) -> None:
        handler = TriggerHandler(make_controller(), TriggerConfig(environment="Production"))
        assert not handler.is_authorized("Bearer anything")

    @pytest.mark.asyncio
    async def test_unauthorized_request(self) -> None:
        controller = make_controller()
        controller.invoke = AsyncMock()
        handler = TriggerHandler(controller, TriggerConfig(environment="production", cron_secret="x"))

        response = await handler.handle(authorization="Bearer y")

        assert response.status_code == 401
        assert response.body == {"error": "Unauthorized"}
        controller.invoke.assert_not_called()


class TestHandle:
    """Test request routing."""

    @pytest.mark.asyncio
    async def test_invocation(self) -> None:
        response = await TriggerHandler(make_controller()).handle()
        assert response.ok
        assert response.body["success"] is True
        assert response.body["message"] == "No documents to process"
        assert response.summary is not None

    @pytest.mark.asyncio
    async def test_unknown_action_runs_invocation(self) -> None:
        response = await TriggerHandler(make_controller()).handle({"action": "something-else"})
        assert response.status_code == 200
        assert "documentsScanned" in response.body

    @pytest.mark.asyncio
    async def test_load_failure_is_server_error(self) -> None:
        response = await TriggerHandler(make_controller(BrokenStore())).handle()
        assert response.status_code == 500
        assert response.body["error"] == "Failed to fetch documents: db down"

    @pytest.mark.asyncio
    async def test_controller_exception(self) -> None:
        controller = MagicMock()
        controller.invoke = AsyncMock(side_effect=RuntimeError("kaboom"))

        response = await TriggerHandler(controller).handle()

        assert response.status_code == 500
        assert response.body["success"] is False
        assert response.body["error"] == "kaboom"
        assert "timestamp" in response.body

    @pytest.mark.asyncio
    async def test_reset_errors_action(self) -> None:
        store = InMemoryDocumentStore([failing_document()])
        handler = TriggerHandler(make_controller(store))

        response = await handler.handle({"action": "reset-errors", "documentId": "d1"})

        assert response.status_code == 200
        assert response.body["resetsPerformed"] == 1
        assert response.body["scheduleId"] == "all"
        assert response.body["message"] == "Reset errors for 1 schedule(s)"

    @pytest.mark.asyncio
    async def test_reset_errors_requires_document(self) -> None:
        response = await TriggerHandler(make_controller()).handle({"action": "reset-errors"})
        assert response.status_code == 400
        assert response.body["error"] == "documentId is required for error reset"

    @pytest.mark.asyncio
    async def test_reset_errors_unknown_document(self) -> None:
        response = await TriggerHandler(make_controller()).handle(
            {"action": "reset-errors", "documentId": "missing", "scheduleId": "s1"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("schedule_id", [42, ["s1"], {"id": "s1"}, True])
    async def test_reset_errors_rejects_non_string_schedule(self, schedule_id) -> None:
        store = InMemoryDocumentStore([failing_document("s1", "s2")])
        handler = TriggerHandler(make_controller(store))

        response = await handler.handle(
            {"action": "reset-errors", "documentId": "d1", "scheduleId": schedule_id}
        )

        assert response.status_code == 400
        assert response.body["error"] == "scheduleId must be a string"
        assert store.writes == []

    @pytest.mark.asyncio
    async def test_reset_errors_empty_schedule_matches_nothing(self) -> None:
        store = InMemoryDocumentStore([failing_document("s1", "s2")])
        handler = TriggerHandler(make_controller(store))

        response = await handler.handle({"action": "reset-errors", "documentId": "d1", "scheduleId": ""})

        assert response.status_code == 200
        assert response.body["resetsPerformed"] == 0
        assert response.body["scheduleId"] == ""
        assert store.writes == []
