"""Execution engine boundary."""

from cadence_cli.engine.client import (
    EngineResponse,
    ExecutionEngine,
    ExecutionRequest,
    HttpExecutionEngine,
    create_execution_engine,
)

__all__ = [
    "EngineResponse",
    "ExecutionEngine",
    "ExecutionRequest",
    "HttpExecutionEngine",
    "create_execution_engine",
]
