"""Concurrency-limited execution of selected schedules."""

import asyncio
import logging
from typing import List, Optional

from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.gate import ExecutionGate
from cadence_cli.executor.models import ScheduleItem
from cadence_cli.executor.results import ErrorCategory, ExecutionResult

logger = logging.getLogger(__name__)

MAX_CONCURRENT_EXECUTIONS = 5


class BatchRunner:
    """Executes schedule items in consecutive fixed-size chunks.

    Each chunk runs concurrently and fully settles before the next one
    starts, so at most ``max_concurrent`` engine calls are in flight at
    any time. The result list always has one entry per input item, in
    input order.
    """

    def __init__(self, gate: ExecutionGate) -> None:
        self.gate = gate

    async def run_all(
        self,
        items: List[ScheduleItem],
        max_concurrent: int = MAX_CONCURRENT_EXECUTIONS,
        deadline: Optional[Deadline] = None,
    ) -> List[ExecutionResult]:
        """Execute all items with bounded concurrency.

        Args:
            items: Schedules to execute
            max_concurrent: Chunk size
            deadline: Batch budget; once expired, remaining chunks are
                not dispatched and their items fail

        Returns:
            One result per item, in input order

        Raises:
            ValueError: If max_concurrent is less than 1
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

        deadline = deadline or Deadline.unbounded()
        results: List[ExecutionResult] = []

        for start in range(0, len(items), max_concurrent):
            chunk = items[start:start + max_concurrent]

            if deadline.expired:
                logger.warning(
                    f"Deadline exceeded, skipping {len(items) - start} remaining schedule(s)"
                )
                results.extend(
                    self._failed(item, "Execution skipped: deadline exceeded", ErrorCategory.TRANSIENT)
                    for item in items[start:]
                )
                break

            logger.debug(
                f"Dispatching chunk {start // max_concurrent + 1} ({len(chunk)} schedule(s))"
            )
            settled = await asyncio.gather(
                *[self._run_one(item, deadline) for item in chunk],
                return_exceptions=True,
            )

            # Convert exceptions to failed results
            for item, outcome in zip(chunk, settled):
                if isinstance(outcome, BaseException):
                    logger.error(
                        f"Dispatch failed for schedule {item.schedule_id} "
                        f"in document {item.document_id}: {outcome}"
                    )
                    results.append(self._failed(
                        item,
                        f"Batch execution failed: {str(outcome) or type(outcome).__name__}",
                        ErrorCategory.INFRASTRUCTURE,
                    ))
                else:
                    results.append(outcome)

        return results

    async def _run_one(self, item: ScheduleItem, deadline: Deadline) -> ExecutionResult:
        outcome = await self.gate.run(item.document_id, item.schedule, deadline)
        return ExecutionResult.from_outcome(
            item.document_id,
            item.schedule_id,
            item.schedule.name,
            outcome,
        )

    @staticmethod
    def _failed(item: ScheduleItem, error: str, category: ErrorCategory) -> ExecutionResult:
        return ExecutionResult(
            document_id=item.document_id,
            schedule_id=item.schedule_id,
            schedule_name=item.schedule.name,
            success=False,
            error=error,
            category=category,
        )
