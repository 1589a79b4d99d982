"""Folds execution results back into schedule state and persists it."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.due_check import MAX_ERROR_COUNT
from cadence_cli.executor.models import (
    DOCUMENT_KIND,
    ParsedDocument,
    ScheduleItem,
    format_timestamp,
)
from cadence_cli.executor.results import ErrorCategory, ExecutionResult, InvocationIssue
from cadence_cli.executor.store import DocumentStore

logger = logging.getLogger(__name__)

MISSING_RESULT_ERROR = "No execution result returned"
UNKNOWN_ERROR = "Unknown error"
DEFAULT_TITLE = "Untitled"
WRITE_TIMEOUT = 30.0
WRITE_TIMEOUT_ERROR = "Database write timeout"


@dataclass
class ReconcileReport:
    """What the reconcile step changed.

    Attributes:
        documents_updated: Documents written successfully
        write_failures: (document_id, message) for each failed write
        schedules_with_errors: Reconciled schedules with a non-zero error count
        disabled_schedules: Reconciled schedules at or over the error threshold
        missing_results: Items for which no execution result was found
    """

    documents_updated: int = 0
    write_failures: List[Tuple[str, str]] = field(default_factory=list)
    schedules_with_errors: int = 0
    disabled_schedules: int = 0
    missing_results: List[ScheduleItem] = field(default_factory=list)

    @property
    def issues(self) -> List[InvocationIssue]:
        """Infrastructure issues raised while reconciling."""
        issues = [
            InvocationIssue(
                category=ErrorCategory.INFRASTRUCTURE,
                message=MISSING_RESULT_ERROR,
                document_id=item.document_id,
                schedule_id=item.schedule_id,
            )
            for item in self.missing_results
        ]
        issues.extend(
            InvocationIssue(
                category=ErrorCategory.INFRASTRUCTURE,
                message=f"Failed to update document: {message}",
                document_id=document_id,
            )
            for document_id, message in self.write_failures
        )
        return issues


class OutcomeReconciler:
    """Applies execution results to schedules and writes documents back.

    Every attempted schedule has its watermark advanced, whatever the
    outcome, so a failing schedule is retried at its next tick rather
    than on every invocation. Documents are written once each, after all
    of their schedules have been updated in memory. All writes of one
    reconcile share a single ``write_timeout`` budget; writes it cannot
    cover fail with "Database write timeout".
    """

    def __init__(
        self,
        store: DocumentStore,
        max_error_count: int = MAX_ERROR_COUNT,
        write_timeout: Optional[float] = WRITE_TIMEOUT,
    ) -> None:
        self.store = store
        self.max_error_count = max_error_count
        self.write_timeout = write_timeout

    async def reconcile(
        self,
        items: List[ScheduleItem],
        results: List[ExecutionResult],
        now: datetime,
    ) -> ReconcileReport:
        """Apply results and persist every affected document.

        Results are matched to items by (document id, schedule id); an
        item without a matching result counts as a failure.
        """
        report = ReconcileReport()
        by_key: Dict[Tuple[str, str], ExecutionResult] = {
            (r.document_id, r.schedule_id): r for r in results
        }
        documents: Dict[str, ParsedDocument] = {}

        for item in items:
            schedule = item.schedule
            schedule.mark_processed(now)

            result = by_key.get((item.document_id, item.schedule_id))
            if result is None:
                logger.warning(
                    f"No execution result found for schedule {schedule.label} "
                    f"in document {item.document_id}"
                )
                report.missing_results.append(item)
                schedule.record_failure(MISSING_RESULT_ERROR, now)
            elif result.success:
                schedule.record_success()
            else:
                schedule.record_failure(result.error or UNKNOWN_ERROR, now)
                logger.warning(
                    f"Schedule {schedule.label} failed (error #{schedule.error_count}): "
                    f"{result.error or UNKNOWN_ERROR}"
                )

            if schedule.error_count > 0:
                report.schedules_with_errors += 1
                if schedule.error_count >= self.max_error_count:
                    report.disabled_schedules += 1

            documents.setdefault(item.document_id, item.parsed)

        write_deadline = Deadline(self.write_timeout)
        for document_id, parsed in documents.items():
            if write_deadline.expired:
                error = WRITE_TIMEOUT_ERROR
            else:
                error = await save_parsed_document(
                    self.store, parsed, now, timeout=write_deadline.clamp(self.write_timeout)
                )
            if error is None:
                report.documents_updated += 1
            else:
                logger.error(f"Failed to update document {document_id}: {error}")
                report.write_failures.append((document_id, error))

        return report


async def save_parsed_document(
    store: DocumentStore,
    parsed: ParsedDocument,
    now: datetime,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """Persist a parsed document with its schedule state written back.

    Args:
        store: Store to write to
        parsed: Document with updated schedule state
        now: Time recorded as ``lastScheduleExecution``
        timeout: Seconds the write may take, unbounded when None

    Returns:
        None on success, otherwise the error message of the failed write
    """
    document = parsed.document
    metadata = dict(document.metadata or {})
    metadata["lastScheduleExecution"] = format_timestamp(now)

    try:
        await asyncio.wait_for(
            store.save_or_update_document(
                id=document.id,
                content=parsed.serialize(),
                user_id=document.user_id,
                title=document.title or DEFAULT_TITLE,
                kind=DOCUMENT_KIND,
                metadata=metadata,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return WRITE_TIMEOUT_ERROR
    except Exception as e:
        return str(e) or type(e).__name__
    return None
