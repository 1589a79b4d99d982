"""Execution gate: validates a due schedule and runs it on the engine.

The gate is the only place the executor talks to the execution engine.
It never raises; every path ends in an ExecutionOutcome.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

from cadence_cli.engine.client import ExecutionEngine, ExecutionRequest
from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.models import Schedule
from cadence_cli.executor.results import ErrorCategory, ExecutionOutcome

logger = logging.getLogger(__name__)

EXECUTION_TIMEOUT = 240.0
EXECUTABLE_TYPE = "code"


def _validate_input_parameters(value: Any) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    if value is None:
        return {}, None
    if not isinstance(value, dict):
        return None, f"Invalid inputParameters: expected an object, got {type(value).__name__}"
    for key in value:
        if not isinstance(key, str):
            return None, "Invalid inputParameters: keys must be strings"
    return value, None


def _validate_env_vars(value: Any) -> Tuple[Optional[Dict[str, str]], Optional[str]]:
    if value is None:
        return {}, None
    if not isinstance(value, dict):
        return None, f"Invalid envVars: expected an object, got {type(value).__name__}"
    for key, item in value.items():
        if not isinstance(item, str):
            return None, f"Invalid envVars: value for '{key}' must be a string"
    return value, None


class ExecutionGate:
    """Runs one schedule against the execution engine.

    Authoring defects (missing or non-executable definitions, malformed
    payloads) are rejected before the engine is called and come back as
    AUTHORING outcomes. Engine exceptions and timeouts come back as
    TRANSIENT outcomes.
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        execution_timeout: float = EXECUTION_TIMEOUT,
    ):
        """Initialize the gate.

        Args:
            engine: Execution engine to dispatch to
            execution_timeout: Per-schedule timeout in seconds
        """
        self.engine = engine
        self.execution_timeout = execution_timeout

    def validate(self, document_id: Any, schedule: Schedule) -> Tuple[Optional[ExecutionRequest], Optional[str]]:
        """Build the engine request for a schedule.

        Returns:
            (request, None) when the schedule can run, (None, error) otherwise
        """
        if not isinstance(document_id, str) or not document_id:
            return None, "Invalid document ID"

        execute = schedule.execute
        if execute is None:
            return None, "Schedule missing execute configuration"

        if execute.type != EXECUTABLE_TYPE:
            return None, f"Unsupported execution type: {execute.type}"

        if not execute.script:
            return None, "No executable code found"

        if not isinstance(execute.script, str):
            return None, "Invalid script format"

        input_parameters, error = _validate_input_parameters(
            schedule.saved_inputs.input_parameters
        )
        if error:
            return None, error

        env_vars, error = _validate_env_vars(schedule.saved_inputs.env_vars)
        if error:
            return None, error

        interval = schedule.raw.get("interval")
        request = ExecutionRequest(
            document_id=document_id,
            schedule_id=str(schedule.id),
            code=execute.script,
            input_parameters=input_parameters,
            env_vars=env_vars,
            interval=interval if isinstance(interval, dict) else {},
            test_mode=False,
        )
        return request, None

    async def run(
        self,
        document_id: str,
        schedule: Schedule,
        deadline: Optional[Deadline] = None,
    ) -> ExecutionOutcome:
        """Validate and execute one schedule.

        Args:
            document_id: Owning document
            schedule: Schedule to run
            deadline: Remaining budget of the caller; bounds the engine call

        Returns:
            The outcome, with execution time in milliseconds
        """
        start = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - start) * 1000)

        request, error = self.validate(document_id, schedule)
        if request is None:
            logger.warning(f"Schedule {schedule.label} in {document_id} cannot run: {error}")
            return ExecutionOutcome.authoring(error, elapsed_ms())

        deadline = deadline or Deadline.unbounded()
        if deadline.expired:
            return ExecutionOutcome.fail(
                "Invocation deadline exceeded before execution started",
                ErrorCategory.TRANSIENT,
                elapsed_ms(),
            )

        timeout = deadline.clamp(self.execution_timeout)
        logger.info(f"Executing schedule {schedule.label} in document {document_id}")

        try:
            response = await asyncio.wait_for(self.engine.execute(request), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Schedule {schedule.label} in {document_id} timed out after {timeout:g}s"
            )
            return ExecutionOutcome.fail(
                f"Execution timeout after {timeout:g}s",
                ErrorCategory.TRANSIENT,
                elapsed_ms(),
            )
        except Exception as e:
            logger.error(f"Engine call failed for schedule {schedule.label} in {document_id}: {e}")
            return ExecutionOutcome.fail(
                str(e) or type(e).__name__,
                ErrorCategory.TRANSIENT,
                elapsed_ms(),
            )

        if response is None:
            return ExecutionOutcome.fail(
                "No execution result returned",
                ErrorCategory.INFRASTRUCTURE,
                elapsed_ms(),
            )

        if response.success:
            logger.info(f"Schedule {schedule.label} in {document_id} succeeded")
            return ExecutionOutcome.ok(elapsed_ms(), response.result)

        logger.warning(
            f"Schedule {schedule.label} in {document_id} failed: {response.error or 'Unknown error'}"
        )
        return ExecutionOutcome.fail(
            response.error or "Unknown error",
            ErrorCategory.TRANSIENT,
            elapsed_ms(),
            response.result,
        )
