"""Execution recorder: append-only per-node log plus the final run envelope."""

from __future__ import annotations

import copy
from typing import Any, List, Optional

from automation_engine.models import (
    ErrorKind,
    ExecutionLogEntry,
    NodeExecutionStatus,
    RunResult,
    utc_now_iso,
)


class ExecutionRecorder:
    """Keeps log entries in execution order.

    Entries are stamped when the node's result is known, so ``timestamp``
    marks completion rather than invocation.
    """

    def __init__(self, execution_id: Optional[str] = None):
        self.execution_id = execution_id
        self._entries: List[ExecutionLogEntry] = []

    def append(self, entry: ExecutionLogEntry) -> ExecutionLogEntry:
        self._entries.append(entry)
        return entry

    def record(
        self,
        node_id: str,
        node_type: str,
        status: NodeExecutionStatus,
        *,
        input: Any = None,
        output: Any = None,
        error: Optional[str] = None,
    ) -> ExecutionLogEntry:
        return self.append(
            ExecutionLogEntry(
                node_id=node_id,
                node_type=node_type,
                status=status,
                input=copy.deepcopy(input),
                output=copy.deepcopy(output),
                error=error,
                timestamp=utc_now_iso(),
            )
        )

    @property
    def entries(self) -> List[ExecutionLogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def finalize(
        self,
        success: bool,
        *,
        output: Any = None,
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None,
    ) -> RunResult:
        return RunResult(
            success=success,
            output=output if success else None,
            error=error,
            error_kind=error_kind,
            execution_id=self.execution_id,
            execution_log=list(self._entries),
        )


__all__ = ["ExecutionRecorder"]
