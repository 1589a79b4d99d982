"""Periodic schedule executor.

Finds the schedules embedded in stored documents that are due, runs them
on the execution engine with bounded concurrency, and writes their
updated state back to the documents.
"""

from cadence_cli.executor.batch import BatchRunner
from cadence_cli.executor.controller import InvocationController, SelectionStats
from cadence_cli.executor.cron import NextDue, is_valid_pattern, next_due
from cadence_cli.executor.deadline import Deadline
from cadence_cli.executor.due_check import DueCheck, DueCheckPolicy
from cadence_cli.executor.gate import ExecutionGate
from cadence_cli.executor.reconciler import OutcomeReconciler, ReconcileReport
from cadence_cli.executor.results import (
    ErrorCategory,
    ExecutionOutcome,
    ExecutionResult,
    InvocationIssue,
    InvocationSummary,
    ResetResult,
)
from cadence_cli.executor.store import DocumentStore, InMemoryDocumentStore
from cadence_cli.executor.trigger import TriggerHandler, TriggerResponse

__all__ = [
    "BatchRunner",
    "Deadline",
    "DocumentStore",
    "DueCheck",
    "DueCheckPolicy",
    "ErrorCategory",
    "ExecutionGate",
    "ExecutionOutcome",
    "ExecutionResult",
    "InMemoryDocumentStore",
    "InvocationController",
    "InvocationIssue",
    "InvocationSummary",
    "NextDue",
    "OutcomeReconciler",
    "ReconcileReport",
    "ResetResult",
    "SelectionStats",
    "TriggerHandler",
    "TriggerResponse",
    "is_valid_pattern",
    "next_due",
]
