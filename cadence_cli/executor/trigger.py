"""Trigger surface: maps an external trigger request onto the controller.

The surface is transport-agnostic. A web handler or the CLI passes the
request body and the Authorization header value in and sends the
returned status code and JSON body back.
"""

import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cadence_cli.config import TriggerConfig
from cadence_cli.executor.controller import InvocationController
from cadence_cli.executor.models import format_timestamp, utcnow
from cadence_cli.executor.results import InvocationSummary

logger = logging.getLogger(__name__)

RESET_ERRORS_ACTION = "reset-errors"


@dataclass
class TriggerResponse:
    """HTTP-style response of the trigger surface."""

    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)
    summary: Optional[InvocationSummary] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class TriggerHandler:
    """Authorizes trigger requests and routes them to the controller.

    Outside production every request is accepted, so the executor can be
    driven by hand during development.
    """

    def __init__(self, controller: InvocationController, config: Optional[TriggerConfig] = None):
        self.controller = controller
        self.config = config or TriggerConfig()

    def is_authorized(self, authorization: Optional[str]) -> bool:
        """Check the bearer secret; only enforced in production."""
        if not self.config.is_production:
            return True
        if not self.config.cron_secret or not authorization:
            return False
        expected = f"Bearer {self.config.cron_secret}"
        return hmac.compare_digest(authorization.encode(), expected.encode())

    async def handle(
        self,
        body: Any = None,
        authorization: Optional[str] = None,
    ) -> TriggerResponse:
        """Handle one trigger request.

        Args:
            body: Decoded JSON body; anything that is not an object with
                ``action == "reset-errors"`` runs an invocation
            authorization: Value of the Authorization header

        Returns:
            The response to send back
        """
        if not self.is_authorized(authorization):
            logger.warning("Rejected unauthorized trigger request")
            return TriggerResponse(401, {"error": "Unauthorized"})

        started = time.monotonic()
        try:
            if isinstance(body, dict) and body.get("action") == RESET_ERRORS_ACTION:
                return await self._reset_errors(body)

            summary = await self.controller.invoke()
        except Exception as e:
            logger.exception("Trigger request failed")
            return TriggerResponse(500, {
                "success": False,
                "error": str(e) or "Unknown error",
                "timestamp": format_timestamp(utcnow()),
                "executionTime": int((time.monotonic() - started) * 1000),
            })

        # Failures that happened before anything ran are server errors
        if not summary.success and summary.error and not summary.execution_results:
            return TriggerResponse(500, summary.to_dict(), summary)
        return TriggerResponse(200, summary.to_dict(), summary)

    async def _reset_errors(self, body: Dict[str, Any]) -> TriggerResponse:
        document_id = body.get("documentId")
        schedule_id = body.get("scheduleId")
        if schedule_id is not None and not isinstance(schedule_id, str):
            return TriggerResponse(400, {
                "success": False,
                "error": "scheduleId must be a string",
                "timestamp": format_timestamp(utcnow()),
            })

        result = await self.controller.reset_errors(
            document_id if isinstance(document_id, str) else None,
            schedule_id,
        )
        return TriggerResponse(result.status_code, result.to_dict())
