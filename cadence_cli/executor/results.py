"""Result types and error taxonomy for schedule execution.

Every component boundary of the executor returns one of these structured
results instead of raising, so one schedule's failure can never take down
the invocation that is processing it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for reporting and retry decisions.

    AUTHORING errors are defects in a schedule or document that only the
    user can fix. TRANSIENT errors count toward a schedule's error backoff.
    INFRASTRUCTURE errors come from the platform itself (document store,
    dispatch) rather than from the user's automation.
    """

    AUTHORING = "authoring"
    TRANSIENT = "transient"
    INFRASTRUCTURE = "infrastructure"


@dataclass
class ExecutionOutcome:
    """Outcome of running one schedule through the execution gate.

    Attributes:
        success: Whether the engine reported success
        error: Error message if failed
        category: Error category if failed
        execution_time: Wall-clock duration in milliseconds
        result: Engine-provided result payload
    """

    success: bool
    error: Optional[str] = None
    category: Optional[ErrorCategory] = None
    execution_time: int = 0
    result: Any = None

    @classmethod
    def ok(cls, execution_time: int = 0, result: Any = None) -> "ExecutionOutcome":
        """Create a successful outcome."""
        return cls(success=True, execution_time=execution_time, result=result)

    @classmethod
    def fail(
        cls,
        error: str,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        execution_time: int = 0,
        result: Any = None,
    ) -> "ExecutionOutcome":
        """Create a failed outcome."""
        return cls(
            success=False,
            error=error,
            category=category,
            execution_time=execution_time,
            result=result,
        )

    @classmethod
    def authoring(cls, error: str, execution_time: int = 0) -> "ExecutionOutcome":
        """Create a failed outcome for a schedule that cannot run as written."""
        return cls.fail(error, ErrorCategory.AUTHORING, execution_time)


@dataclass
class ExecutionResult:
    """Result of one attempted schedule in an invocation.

    Attributes:
        document_id: Owning document
        schedule_id: Schedule that ran
        schedule_name: Schedule display name
        success: Whether execution succeeded
        error: Error message if failed
        category: Error category if failed
        execution_time: Wall-clock duration in milliseconds
        result: Engine-provided result payload
    """

    document_id: str
    schedule_id: str
    schedule_name: str
    success: bool
    error: Optional[str] = None
    category: Optional[ErrorCategory] = None
    execution_time: int = 0
    result: Any = None

    @classmethod
    def from_outcome(
        cls,
        document_id: str,
        schedule_id: str,
        schedule_name: str,
        outcome: ExecutionOutcome,
    ) -> "ExecutionResult":
        return cls(
            document_id=document_id,
            schedule_id=schedule_id,
            schedule_name=schedule_name,
            success=outcome.success,
            error=outcome.error,
            category=outcome.category,
            execution_time=outcome.execution_time,
            result=outcome.result,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "documentId": self.document_id,
            "scheduleId": self.schedule_id,
            "scheduleName": self.schedule_name,
            "success": self.success,
            "executionTime": self.execution_time,
        }
        if self.error is not None:
            data["error"] = self.error
        if self.category is not None:
            data["category"] = self.category.value
        if self.result is not None:
            data["result"] = self.result
        return data


@dataclass
class InvocationIssue:
    """A problem found while scanning or reconciling, not tied to an execution.

    Attributes:
        category: What kind of failure this is
        message: Human-readable description
        document_id: Affected document, if any
        schedule_id: Affected schedule, if any
    """

    category: ErrorCategory
    message: str
    document_id: Optional[str] = None
    schedule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "category": self.category.value,
            "message": self.message,
        }
        if self.document_id is not None:
            data["documentId"] = self.document_id
        if self.schedule_id is not None:
            data["scheduleId"] = self.schedule_id
        return data


@dataclass
class InvocationSummary:
    """Externally observable output of one invocation.

    ``validation_errors`` counts authoring problems found while scanning
    plus document write failures; ``infrastructure_errors`` counts the
    subset of issues caused by the platform rather than by user content.
    """

    success: bool
    timestamp: str
    execution_time: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    documents_scanned: int = 0
    total_documents: int = 0
    documents_updated: int = 0
    schedules_processed: int = 0
    schedules_executed: int = 0
    schedules_skipped: int = 0
    schedules_failed: int = 0
    schedules_suspended: int = 0
    schedules_with_errors: int = 0
    disabled_schedules: int = 0
    validation_errors: int = 0
    infrastructure_errors: int = 0
    limits: Dict[str, Any] = field(default_factory=dict)
    issues: List[InvocationIssue] = field(default_factory=list)
    execution_results: List[ExecutionResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "timestamp": self.timestamp,
            "executionTime": self.execution_time,
        }
        if self.message is not None:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error
        data.update({
            "documentsScanned": self.documents_scanned,
            "totalDocuments": self.total_documents,
            "documentsUpdated": self.documents_updated,
            "schedulesProcessed": self.schedules_processed,
            "schedulesExecuted": self.schedules_executed,
            "schedulesSkipped": self.schedules_skipped,
            "schedulesFailed": self.schedules_failed,
            "schedulesSuspended": self.schedules_suspended,
            "schedulesWithErrors": self.schedules_with_errors,
            "disabledSchedules": self.disabled_schedules,
            "validationErrors": self.validation_errors,
            "infrastructureErrors": self.infrastructure_errors,
            "limits": dict(self.limits),
            "errors": [issue.to_dict() for issue in self.issues],
            "executionResults": [r.to_dict() for r in self.execution_results],
        })
        return data


@dataclass
class ResetResult:
    """Outcome of an error-reset request.

    ``status_code`` follows HTTP conventions so the trigger surface can
    return it unchanged.
    """

    success: bool
    status_code: int = 200
    document_id: Optional[str] = None
    schedule_id: Optional[str] = None
    resets_performed: int = 0
    error: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "timestamp": self.timestamp}
        return {
            "success": True,
            "message": f"Reset errors for {self.resets_performed} schedule(s)",
            "documentId": self.document_id,
            "scheduleId": "all" if self.schedule_id is None else self.schedule_id,
            "resetsPerformed": self.resets_performed,
            "timestamp": self.timestamp,
        }
