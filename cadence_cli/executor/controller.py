"""Invocation controller: one complete load, select, execute, reconcile cycle.

An invocation is triggered externally on a fixed cadence. It loads the
documents, picks the schedules that are due, runs them with bounded
concurrency, writes the updated schedule state back and reports a
summary. The whole cycle is bounded by a single deadline and the
controller never raises; every failure ends up in the summary.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from cadence_cli.config import ExecutorConfig
from cadence_cli.engine.client import ExecutionEngine
from cadence_cli.executor.batch import BatchRunner
from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.due_check import DueCheckPolicy
from cadence_cli.executor.gate import ExecutionGate
from cadence_cli.executor.models import (
    Document,
    DocumentParseError,
    ParsedDocument,
    ScheduleItem,
    format_timestamp,
    utcnow,
)
from cadence_cli.executor.reconciler import OutcomeReconciler, save_parsed_document
from cadence_cli.executor.results import (
    ErrorCategory,
    InvocationIssue,
    InvocationSummary,
    ResetResult,
)
from cadence_cli.executor.store import DocumentStore

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "Invocation deadline exceeded"


@dataclass
class SelectionStats:
    """Counters accumulated while scanning documents for due schedules."""

    documents_scanned: int = 0
    total_documents: int = 0
    schedules_processed: int = 0
    schedules_skipped: int = 0
    schedules_suspended: int = 0
    validation_errors: int = 0
    issues: List[InvocationIssue] = field(default_factory=list)

    def authoring_error(
        self,
        message: str,
        document_id: Optional[str] = None,
        schedule_id: Optional[str] = None,
    ) -> None:
        self.validation_errors += 1
        self.issues.append(InvocationIssue(
            category=ErrorCategory.AUTHORING,
            message=message,
            document_id=document_id,
            schedule_id=schedule_id,
        ))


class InvocationController:
    """Drives one invocation of the schedule executor.

    Example:
        controller = InvocationController(store, engine, config.executor)
        summary = await controller.invoke()
        print(summary.to_dict())
    """

    def __init__(
        self,
        store: DocumentStore,
        engine: ExecutionEngine,
        config: Optional[ExecutorConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the controller.

        Args:
            store: Document store to load from and write back to
            engine: Execution engine schedules are dispatched to
            config: Limits and timeouts, defaults when omitted
            clock: Source of the current time
        """
        self.store = store
        self.config = config or ExecutorConfig()
        self._clock = clock

        self.policy = DueCheckPolicy(
            max_error_count=self.config.max_error_count,
            error_reset_hours=self.config.error_reset_hours,
            bootstrap_lookback_hours=self.config.bootstrap_lookback_hours,
        )
        self.gate = ExecutionGate(engine, execution_timeout=self.config.execution_timeout)
        self.runner = BatchRunner(self.gate)
        self.reconciler = OutcomeReconciler(
            store,
            max_error_count=self.config.max_error_count,
            write_timeout=self.config.write_timeout,
        )

    @property
    def limits(self) -> Dict[str, Any]:
        return {
            "maxDocuments": self.config.max_documents_per_run,
            "maxSchedules": self.config.max_schedules_per_run,
            "maxConcurrency": self.config.max_concurrent_executions,
            "maxErrorCount": self.config.max_error_count,
            "errorResetHours": self.config.error_reset_hours,
            "executionTimeout": self.config.execution_timeout,
            "cronTimeout": self.config.cron_timeout,
            "writeTimeout": self.config.write_timeout,
        }

    async def invoke(self, now: Optional[datetime] = None) -> InvocationSummary:
        """Run one invocation.

        Args:
            now: Decision time for due checks and watermarks

        Returns:
            The invocation summary; never raises
        """
        deadline = Deadline(self.config.cron_timeout)
        now = now or self._clock()
        logger.info("Invocation started: checking active schedules")

        try:
            return await self._invoke(now, deadline)
        except Exception as e:
            logger.exception("Invocation failed with an unexpected error")
            return self._failure(now, deadline, f"Unexpected error: {e}")

    async def _invoke(self, now: datetime, deadline: Deadline) -> InvocationSummary:
        stats = SelectionStats()

        # Load
        try:
            all_documents = await asyncio.wait_for(
                self.store.get_all_documents(),
                timeout=deadline.clamp(self.config.load_timeout),
            )
        except asyncio.TimeoutError:
            logger.error("Timed out loading documents")
            return self._failure(now, deadline, "Failed to fetch documents: Database query timeout")
        except Exception as e:
            logger.error(f"Failed to fetch documents: {e}")
            return self._failure(now, deadline, f"Failed to fetch documents: {e}")

        if not all_documents:
            logger.info("No documents found")
            return self._summary(now, deadline, stats, success=True, message="No documents to process")

        # Cap
        documents = list(all_documents[:self.config.max_documents_per_run])
        stats.total_documents = len(all_documents)
        stats.documents_scanned = len(documents)
        if len(all_documents) > len(documents):
            logger.info(
                f"Processing {len(documents)} of {len(all_documents)} documents "
                "(limited per invocation)"
            )

        # Select
        queue = self._select(documents, now, stats)
        logger.info(f"Found {len(queue)} schedule(s) ready to execute")

        if deadline.expired:
            logger.error("Deadline exceeded before any schedule was executed")
            return self._summary(now, deadline, stats, success=False, error=DEADLINE_EXCEEDED)

        if not queue:
            return self._summary(
                now, deadline, stats, success=True, message="No schedules ready to execute"
            )

        # Execute
        logger.info(
            f"Executing {len(queue)} schedule(s) with max concurrency "
            f"{self.config.max_concurrent_executions}"
        )
        results = await self.runner.run_all(
            queue,
            max_concurrent=self.config.max_concurrent_executions,
            deadline=deadline,
        )
        deadline_exceeded = deadline.expired

        # Reconcile
        report = await self.reconciler.reconcile(queue, results, now)

        succeeded = sum(1 for r in results if r.success)
        failed = len(results) - succeeded
        issues = stats.issues + report.issues
        infrastructure_errors = sum(
            1 for issue in issues if issue.category == ErrorCategory.INFRASTRUCTURE
        ) + sum(1 for r in results if r.category == ErrorCategory.INFRASTRUCTURE)
        validation_errors = stats.validation_errors + len(report.write_failures)

        summary = self._summary(
            now,
            deadline,
            stats,
            success=failed == 0 and validation_errors == 0 and not deadline_exceeded,
            message=f"Executed {len(results)} schedule(s): {succeeded} succeeded, {failed} failed",
            error=DEADLINE_EXCEEDED if deadline_exceeded else None,
        )
        summary.documents_updated = report.documents_updated
        summary.schedules_executed = succeeded
        summary.schedules_failed = failed
        summary.schedules_with_errors = report.schedules_with_errors
        summary.disabled_schedules = report.disabled_schedules
        summary.validation_errors = validation_errors
        summary.infrastructure_errors = infrastructure_errors
        summary.issues = issues
        summary.execution_results = results

        logger.info(
            f"Invocation completed: {succeeded}/{len(queue)} schedule(s) succeeded, "
            f"{failed} failed, {validation_errors} validation/processing error(s)"
        )
        return summary

    def _select(
        self,
        documents: List[Document],
        now: datetime,
        stats: SelectionStats,
    ) -> List[ScheduleItem]:
        """Pick the schedules to execute, at most one per document."""
        queue: List[ScheduleItem] = []
        queued_documents = set()

        for document in documents:
            try:
                parsed = ParsedDocument.parse(document)
            except DocumentParseError as e:
                logger.error(f"Failed to parse document {document.id}: {e}")
                stats.authoring_error(f"Failed to parse document: {e}", document.id)
                continue

            if parsed is None or not parsed.has_schedules:
                continue

            for entry in parsed.entries:
                stats.schedules_processed += 1

                if entry is None:
                    stats.authoring_error("Schedule entry must be an object", document.id)
                    continue

                check = self.policy.is_due(entry, now)
                if check.suspended:
                    logger.info(f"Schedule {entry.label} suspended: {check.error}")
                    stats.schedules_suspended += 1
                    stats.issues.append(InvocationIssue(
                        category=ErrorCategory.TRANSIENT,
                        message=check.error or "Schedule suspended",
                        document_id=document.id,
                        schedule_id=str(entry.id),
                    ))
                    continue

                if check.error:
                    logger.error(f"Schedule validation error for {entry.label}: {check.error}")
                    stats.authoring_error(
                        check.error,
                        document.id,
                        entry.id if isinstance(entry.id, str) else None,
                    )
                    continue

                if not check.should_run:
                    logger.debug(f"Skipping schedule {entry.label}: not ready to run")
                    continue

                if len(queue) >= self.config.max_schedules_per_run:
                    logger.info(f"Skipping schedule {entry.label}: schedule limit reached")
                    stats.schedules_skipped += 1
                    continue

                if document.id in queued_documents:
                    logger.info(
                        f"Skipping schedule {entry.label}: document {document.id} "
                        "already has a schedule queued"
                    )
                    stats.schedules_skipped += 1
                    continue

                error_info = f" (errors: {entry.error_count})" if entry.error_count else ""
                logger.info(f"Queuing schedule {entry.label}{error_info} for execution")
                queue.append(ScheduleItem(document.id, entry, parsed))
                queued_documents.add(document.id)

        return queue

    def _summary(
        self,
        now: datetime,
        deadline: Deadline,
        stats: SelectionStats,
        success: bool,
        message: Optional[str] = None,
        error: Optional[str] = None,
    ) -> InvocationSummary:
        return InvocationSummary(
            success=success,
            timestamp=format_timestamp(now),
            execution_time=deadline.elapsed_ms,
            message=message,
            error=error,
            documents_scanned=stats.documents_scanned,
            total_documents=stats.total_documents,
            schedules_processed=stats.schedules_processed,
            schedules_skipped=stats.schedules_skipped,
            schedules_suspended=stats.schedules_suspended,
            validation_errors=stats.validation_errors,
            limits=self.limits,
            issues=list(stats.issues),
        )

    def _failure(self, now: datetime, deadline: Deadline, error: str) -> InvocationSummary:
        return InvocationSummary(
            success=False,
            timestamp=format_timestamp(now),
            execution_time=deadline.elapsed_ms,
            error=error,
            infrastructure_errors=1,
            limits=self.limits,
            issues=[InvocationIssue(category=ErrorCategory.INFRASTRUCTURE, message=error)],
        )

    async def reset_errors(
        self,
        document_id: Optional[str],
        schedule_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ResetResult:
        """Clear the error state of one schedule, or of all schedules of a document.

        The document is written only when at least one schedule actually
        had errors to clear, so repeating a reset is harmless.

        Args:
            document_id: Document holding the schedules
            schedule_id: Schedule to reset; all schedules when None
            now: Time recorded on the result and document metadata
        """
        now = now or self._clock()
        timestamp = format_timestamp(now)

        if not document_id:
            return ResetResult(
                success=False,
                status_code=400,
                error="documentId is required for error reset",
                timestamp=timestamp,
            )

        try:
            document = await self.store.get_document(document_id)
        except Exception as e:
            logger.error(f"Error reset failed for document {document_id}: {e}")
            return ResetResult(
                success=False,
                status_code=500,
                error=f"Failed to reset errors: {e}",
                timestamp=timestamp,
            )

        if document is None:
            return ResetResult(
                success=False, status_code=404, error="Document not found", timestamp=timestamp
            )

        try:
            parsed = ParsedDocument.parse(document)
        except DocumentParseError:
            parsed = None

        if parsed is None or not parsed.has_schedules:
            return ResetResult(
                success=False,
                status_code=400,
                error="Invalid document or no schedules found",
                timestamp=timestamp,
            )

        resets = 0
        for schedule in parsed.schedules:
            if schedule_id is None or schedule.id == schedule_id:
                if schedule.reset_errors():
                    logger.info(f"Reset errors for schedule {schedule.label}")
                    resets += 1

        if resets:
            error = await save_parsed_document(
                self.store, parsed, now, timeout=self.config.write_timeout
            )
            if error is not None:
                logger.error(f"Failed to save error reset for document {document_id}: {error}")
                return ResetResult(
                    success=False,
                    status_code=500,
                    error="Failed to save error reset",
                    timestamp=timestamp,
                )

        return ResetResult(
            success=True,
            document_id=document_id,
            schedule_id=schedule_id,
            resets_performed=resets,
            timestamp=timestamp,
        )
