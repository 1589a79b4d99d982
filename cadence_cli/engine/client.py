"""Execution engine client.

The execution engine is the sandboxed runtime that actually runs a
schedule's script. This module defines the request/response shapes the
executor exchanges with it, an abstract engine interface, and an HTTP
implementation that POSTs requests to a remote engine endpoint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ExecutionRequest:
    """Request sent to the execution engine for one schedule run.

    Attributes:
        document_id: Document the schedule belongs to
        schedule_id: Schedule being executed
        code: Script source to run
        input_parameters: Saved input parameters of the schedule
        env_vars: Saved environment variables of the schedule
        interval: The schedule's timing rule, as stored
        test_mode: Whether the engine should skip persisting side effects
    """

    document_id: str
    schedule_id: str
    code: str
    input_parameters: Dict[str, Any] = field(default_factory=dict)
    env_vars: Dict[str, str] = field(default_factory=dict)
    interval: Dict[str, Any] = field(default_factory=dict)
    test_mode: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "scheduleId": self.schedule_id,
            "code": self.code,
            "inputParameters": self.input_parameters,
            "envVars": self.env_vars,
            "testMode": self.test_mode,
            "interval": self.interval,
        }


@dataclass
class EngineResponse:
    """Normalized response from the execution engine."""

    success: bool
    error: Optional[str] = None
    result: Any = None
    message: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineResponse":
        error = data.get("error")
        details = data.get("details")
        if error and details:
            error = f"{error}: {details}"
        return cls(
            success=data.get("success") is True,
            error=str(error) if error else None,
            result=data.get("result"),
            message=data.get("message"),
            raw=data,
        )


class ExecutionEngine(ABC):
    """Abstract interface of an execution engine.

    Implementations may raise on transport failures; the execution gate
    turns any exception into a failed outcome.
    """

    @abstractmethod
    async def execute(self, request: ExecutionRequest) -> Optional[EngineResponse]:
        """Run one schedule and report how it went."""
        pass

    async def close(self) -> None:
        """Release any resources held by the engine."""
        pass


class HttpExecutionEngine(ExecutionEngine):
    """Execution engine reached over HTTP.

    Requests are POSTed as JSON to a single endpoint. When an API key is
    configured it is sent as a bearer token.

    Example:
        engine = HttpExecutionEngine("http://localhost:3000/api/agent/execute-schedule")
        try:
            response = await engine.execute(request)
        finally:
            await engine.close()
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the HTTP engine.

        Args:
            url: Engine endpoint receiving execution requests
            api_key: Optional bearer secret
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def execute(self, request: ExecutionRequest) -> Optional[EngineResponse]:
        """POST an execution request and normalize the reply.

        Non-2xx replies become failed responses carrying the body's error.

        Raises:
            httpx.HTTPError: On transport failures
        """
        if self._client is None:
            await self.initialize()

        response = await self._client.post(self.url, json=request.to_dict())

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_success:
            if not isinstance(data, dict):
                logger.warning(
                    f"Engine returned a non-object body for schedule {request.schedule_id}"
                )
                return None
            return EngineResponse.from_dict(data)

        error_msg = f"Execution engine error: {response.status_code}"
        if isinstance(data, dict):
            detail = EngineResponse.from_dict(data).error
            if detail:
                error_msg = f"{error_msg} - {detail}"
        logger.error(error_msg)
        return EngineResponse(
            success=False,
            error=error_msg,
            raw=data if isinstance(data, dict) else {},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_execution_engine(
    url: str,
    api_key: Optional[str] = None,
    timeout: float = 300.0,
) -> ExecutionEngine:
    """Factory for the configured execution engine.

    Raises:
        ValueError: If no engine URL is configured
    """
    if not url:
        raise ValueError("Execution engine URL is required")
    return HttpExecutionEngine(url=url, api_key=api_key, timeout=timeout)
