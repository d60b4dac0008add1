"""Data models shared by the engine, the adapters and the API layer."""

from .credentials import CredentialBundle, CredentialType
from .execution import (
    ErrorKind,
    ExecutionLogEntry,
    ExecutionStatus,
    NodeExecutionStatus,
    OperationError,
    OperationMetadata,
    IterationBundle,
    IterationTestResult,
    NodeTestResult,
    OperationResult,
    RunResult,
    utc_now_iso,
)
from .workflow import DROP_NODE_TYPE, TRIGGER_NODE_TYPE, Edge, Node, WorkflowGraph

__all__ = [
    "CredentialBundle",
    "CredentialType",
    "ErrorKind",
    "ExecutionLogEntry",
    "ExecutionStatus",
    "NodeExecutionStatus",
    "OperationError",
    "OperationMetadata",
    "IterationBundle",
    "IterationTestResult",
    "NodeTestResult",
    "OperationResult",
    "RunResult",
    "utc_now_iso",
    "DROP_NODE_TYPE",
    "TRIGGER_NODE_TYPE",
    "Edge",
    "Node",
    "WorkflowGraph",
]
