"""Tests for the execution gate."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from cadence_cli.engine.client import EngineResponse, ExecutionEngine, ExecutionRequest
from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.gate import ExecutionGate
from cadence_cli.executor.models import Schedule
from cadence_cli.executor.results import ErrorCategory


class FakeEngine(ExecutionEngine):
    """Engine that replies with a canned response or raises."""

    def __init__(self, response: Any = None, delay: float = 0.0) -> None:
        self.response = response if response is not None else EngineResponse(success=True, result={"ok": 1})
        self.delay = delay
        self.requests: List[ExecutionRequest] = []

    async def execute(self, request: ExecutionRequest) -> Optional[EngineResponse]:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.response, BaseException):
            raise self.response
        if self.response == "none":
            return None
        return self.response


def make_schedule(**overrides: Any) -> Schedule:
    data: Dict[str, Any] = {
        "id": "s1",
        "name": "Sync",
        "interval": {"pattern": "*/5 * * * *", "timezone": "UTC", "active": True},
        "savedInputs": {"inputParameters": {"limit": 10}, "envVars": {"TOKEN": "abc"}},
        "execute": {"type": "code", "code": {"script": "return input.limit;"}},
    }
    data.update(overrides)
    return Schedule.from_dict(data)


class TestValidate:
    """Test request construction and authoring checks."""

    def test_builds_request(self) -> None:
        gate = ExecutionGate(FakeEngine())
        request, error = gate.validate("doc-1", make_schedule())
        assert error is None
        assert request.to_dict() == {
            "documentId": "doc-1",
            "scheduleId": "s1",
            "code": "return input.limit;",
            "inputParameters": {"limit": 10},
            "envVars": {"TOKEN": "abc"},
            "testMode": False,
            "interval": {"pattern": "*/5 * * * *", "timezone": "UTC", "active": True},
        }

    def test_missing_saved_inputs_default_to_empty(self) -> None:
        schedule = make_schedule(savedInputs=None)
        request, error = ExecutionGate(FakeEngine()).validate("doc-1", schedule)
        assert error is None
        assert request.input_parameters == {}
        assert request.env_vars == {}

    @pytest.mark.parametrize("overrides,expected", [
        ({"execute": None}, "Schedule missing execute configuration"),
        ({"execute": {"type": "webhook", "code": {"script": "x"}}}, "Unsupported execution type: webhook"),
        ({"execute": {"type": "code"}}, "No executable code found"),
        ({"execute": {"type": "code", "code": {"script": ""}}}, "No executable code found"),
        ({"execute": {"type": "code", "code": {"script": ["x"]}}}, "Invalid script format"),
        (
            {"savedInputs": {"inputParameters": [1, 2]}},
            "Invalid inputParameters: expected an object, got list",
        ),
        (
            {"savedInputs": {"envVars": {"PORT": 8080}}},
            "Invalid envVars: value for 'PORT' must be a string",
        ),
    ])
    def test_authoring_errors(self, overrides: Dict[str, Any], expected: str) -> None:
        request, error = ExecutionGate(FakeEngine()).validate("doc-1", make_schedule(**overrides))
        assert request is None
        assert error == expected

    @pytest.mark.parametrize("document_id", ["", None, 42])
    def test_invalid_document_id(self, document_id: Any) -> None:
        _, error = ExecutionGate(FakeEngine()).validate(document_id, make_schedule())
        assert error == "Invalid document ID"


class TestRun:
    """Test engine dispatch."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        engine = FakeEngine()
        outcome = await ExecutionGate(engine).run("doc-1", make_schedule())
        assert outcome.success is True
        assert outcome.error is None
        assert outcome.result == {"ok": 1}
        assert outcome.execution_time >= 0
        assert len(engine.requests) == 1

    @pytest.mark.asyncio
    async def test_authoring_error_skips_engine(self) -> None:
        engine = FakeEngine()
        outcome = await ExecutionGate(engine).run("doc-1", make_schedule(execute=None))
        assert outcome.success is False
        assert outcome.category == ErrorCategory.AUTHORING
        assert engine.requests == []

    @pytest.mark.asyncio
    async def test_engine_reports_failure(self) -> None:
        engine = FakeEngine(EngineResponse(success=False, error="ReferenceError: x is not defined"))
        outcome = await ExecutionGate(engine).run("doc-1", make_schedule())
        assert outcome.success is False
        assert outcome.error == "ReferenceError: x is not defined"
        assert outcome.category == ErrorCategory.TRANSIENT

    @pytest.mark.asyncio
    async def test_engine_failure_without_message(self) -> None:
        outcome = await ExecutionGate(FakeEngine(EngineResponse(success=False))).run("doc-1", make_schedule())
        assert outcome.error == "Unknown error"

    @pytest.mark.asyncio
    async def test_engine_raises(self) -> None:
        outcome = await ExecutionGate(FakeEngine(ConnectionError("refused"))).run("doc-1", make_schedule())
        assert outcome.success is False
        assert outcome.error == "refused"
        assert outcome.category == ErrorCategory.TRANSIENT

    @pytest.mark.asyncio
    async def test_engine_returns_nothing(self) -> None:
        outcome = await ExecutionGate(FakeEngine("none")).run("doc-1", make_schedule())
        assert outcome.error == "No execution result returned"
        assert outcome.category == ErrorCategory.INFRASTRUCTURE

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        gate = ExecutionGate(FakeEngine(delay=1.0), execution_timeout=0.05)
        outcome = await gate.run("doc-1", make_schedule())
        assert outcome.success is False
        assert outcome.error == "Execution timeout after 0.05s"
        assert outcome.category == ErrorCategory.TRANSIENT

    @pytest.mark.asyncio
    async def test_deadline_bounds_timeout(self) -> None:
        """Test that the remaining invocation budget caps the engine call."""
        gate = ExecutionGate(FakeEngine(delay=1.0), execution_timeout=240.0)
        outcome = await gate.run("doc-1", make_schedule(), Deadline(0.05))
        assert outcome.success is False
        assert outcome.error.startswith("Execution timeout after")

    @pytest.mark.asyncio
    async def test_expired_deadline(self) -> None:
        engine = FakeEngine()
        outcome = await ExecutionGate(engine).run("doc-1", make_schedule(), Deadline(0.0))
        assert outcome.error == "Invocation deadline exceeded before execution started"
        assert engine.requests == []
