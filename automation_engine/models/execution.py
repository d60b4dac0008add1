"""
Execution result models.

OperationResult is what every adapter returns; ExecutionLogEntry and
RunResult are what the engine hands back to its caller.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ExecutionStatus(str, Enum):
    """Run-level status"""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeExecutionStatus(str, Enum):
    """Node-level status as it appears in the execution log"""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NODE = "node"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERNAL = "internal"


class OperationError(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str = Field(..., description="Human readable error, upstream message preserved")
    code: Optional[str] = Field(default=None, description="Machine readable error code")
    provider: Optional[str] = None
    operation: Optional[str] = None
    retryable: bool = False
    details: Optional[Dict[str, Any]] = None


class OperationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    started_at: str = Field(default_factory=utc_now_iso, alias="startedAt")
    finished_at: Optional[str] = Field(default=None, alias="finishedAt")
    duration_ms: Optional[int] = Field(default=None, alias="durationMs")
    extra: Dict[str, Any] = Field(default_factory=dict)


class OperationResult(BaseModel):
    """Immutable outcome of a single adapter call.

    ``branches`` carries a routing decision for the scheduler:
    ``None`` keeps every outgoing edge live, an empty list blocks them all,
    and a list of handles keeps only the matching edges (plus handle-less
    edges when the list is non-empty).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    success: bool
    output: Any = None
    error: Optional[OperationError] = None
    metadata: OperationMetadata = Field(default_factory=OperationMetadata)
    branches: Optional[List[str]] = None

    @classmethod
    def ok(
        cls,
        output: Any = None,
        *,
        metadata: Optional[OperationMetadata] = None,
        branches: Optional[List[str]] = None,
    ) -> "OperationResult":
        return cls(
            success=True,
            output=output,
            metadata=metadata or OperationMetadata(),
            branches=branches,
        )

    @classmethod
    def fail(
        cls,
        message: str,
        *,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
        metadata: Optional[OperationMetadata] = None,
    ) -> "OperationResult":
        return cls(
            success=False,
            error=OperationError(
                message=message,
                code=code,
                provider=provider,
                operation=operation,
                retryable=retryable,
                details=details,
            ),
            metadata=metadata or OperationMetadata(),
        )


class ExecutionLogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(..., alias="nodeId")
    node_type: str = Field(..., alias="nodeType")
    status: NodeExecutionStatus
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "nodeId": self.node_id,
            "nodeType": self.node_type,
            "status": self.status.value,
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class RunResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    output: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = Field(default=None, alias="errorKind")
    execution_id: Optional[str] = Field(default=None, alias="executionId")
    execution_log: List[ExecutionLogEntry] = Field(default_factory=list, alias="executionLog")

    @property
    def status(self) -> ExecutionStatus:
        return ExecutionStatus.COMPLETED if self.success else ExecutionStatus.FAILED

    def to_envelope(self) -> Dict[str, Any]:
        """Caller-facing shape: {success, output?, error?, executionLog}"""
        envelope: Dict[str, Any] = {"success": self.success}
        if self.success:
            envelope["output"] = self.output
        if self.error is not None:
            envelope["error"] = self.error
        envelope["executionLog"] = [entry.to_dict() for entry in self.execution_log]
        return envelope


class NodeTestResult(BaseModel):
    """Outcome of running a single node against mock upstream outputs."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    output: Any = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "warnings": list(self.warnings),
            "metadata": dict(self.metadata),
        }


class IterationBundle(BaseModel):
    """Log entries produced by one pass over an iterator body."""

    model_config = ConfigDict(populate_by_name=True)

    bundle_index: int = Field(..., alias="bundleIndex")
    item: Any = None
    node_results: List[ExecutionLogEntry] = Field(default_factory=list, alias="nodeResults")

    @property
    def succeeded(self) -> bool:
        return all(entry.status != NodeExecutionStatus.ERROR for entry in self.node_results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bundleIndex": self.bundle_index,
            "item": self.item,
            "nodeResults": [entry.to_dict() for entry in self.node_results],
        }


class IterationTestResult(BaseModel):
    """Outcome of running an iterator, its body and its boundary in isolation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    output: Any = None
    error: Optional[str] = None
    iterator_output: Any = Field(default=None, alias="iteratorOutput")
    total_bundles: int = Field(default=0, alias="totalBundles")
    iteration_results: List[IterationBundle] = Field(default_factory=list, alias="iterationResults")
    stopped_at: Optional[Dict[str, Any]] = Field(default=None, alias="stoppedAt")
    execution_log: List[ExecutionLogEntry] = Field(default_factory=list, alias="executionLog")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "iteratorOutput": self.iterator_output,
            "totalBundles": self.total_bundles,
            "iterationResults": [bundle.to_dict() for bundle in self.iteration_results],
            "executionLog": [entry.to_dict() for entry in self.execution_log],
        }
        if self.success:
            data["output"] = self.output
            data["summary"] = {
                "totalItems": self.total_bundles,
                "processedItems": len(self.iteration_results),
                "allSucceeded": all(bundle.succeeded for bundle in self.iteration_results),
            }
        if self.error is not None:
            data["error"] = self.error
        if self.stopped_at is not None:
            data["stoppedAt"] = self.stopped_at
        return data


__all__ = [
    "utc_now_iso",
    "ExecutionStatus",
    "NodeExecutionStatus",
    "ErrorKind",
    "OperationError",
    "OperationMetadata",
    "OperationResult",
    "ExecutionLogEntry",
    "RunResult",
    "NodeTestResult",
    "IterationBundle",
    "IterationTestResult",
]
