"""Per-run execution context.

One instance per run. The scheduler is the only writer: adapters read
outputs, variables and credentials through it but hand their results back
to the scheduler instead of recording them directly.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from automation_engine.models import CredentialBundle, OperationResult


@dataclass
class LoopFrame:
    """State of one active ``flow.iterate`` loop."""

    node_id: str
    items: List[Any]
    cursor: int = 0
    aggregated_results: List[Any] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def current_item(self) -> Any:
        if 0 <= self.cursor < len(self.items):
            return self.items[self.cursor]
        return None

    @property
    def is_last_item(self) -> bool:
        return self.cursor >= len(self.items) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.current_item,
            "index": self.cursor,
            "totalItems": self.total_items,
            "isLastItem": self.is_last_item,
            "results": list(self.aggregated_results),
        }


class ExecutionContext:
    def __init__(
        self,
        trigger_input: Optional[Dict[str, Any]] = None,
        credentials: Optional[Mapping[str, CredentialBundle]] = None,
        *,
        workflow_id: Optional[str] = None,
        execution_id: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self._trigger_input = copy.deepcopy(trigger_input) if trigger_input is not None else {}
        self._credentials: Dict[str, CredentialBundle] = dict(credentials or {})
        self.workflow_id = workflow_id
        self.execution_id = execution_id or str(uuid.uuid4())
        self.deadline_seconds = deadline_seconds
        self._started = time.monotonic()
        self._node_results: Dict[str, OperationResult] = {}
        self._previous_output: Any = self._trigger_input
        self._variables: Dict[str, Any] = {}
        self._frames: List[LoopFrame] = []

    # Trigger / outputs

    @property
    def trigger_input(self) -> Dict[str, Any]:
        return self._trigger_input

    def record_output(self, node_id: str, result: OperationResult) -> None:
        self._node_results[node_id] = result
        if result.success:
            self._previous_output = result.output

    def get_output(self, node_id: str) -> Any:
        result = self._node_results.get(node_id)
        if result is None or not result.success:
            return None
        return result.output

    def has_output(self, node_id: str) -> bool:
        result = self._node_results.get(node_id)
        return result is not None and result.success

    @property
    def previous_output(self) -> Any:
        return self._previous_output

    def set_previous_output(self, value: Any) -> None:
        self._previous_output = value

    @property
    def node_outputs(self) -> Dict[str, Any]:
        return {nid: r.output for nid, r in self._node_results.items() if r.success}

    # Variables

    def get_variable(self, key: str, default: Any = None) -> Any:
        return self._variables.get(key, default)

    def set_variable(self, key: str, value: Any) -> None:
        self._variables[key] = value

    @property
    def variables(self) -> Dict[str, Any]:
        return dict(self._variables)

    # Credentials

    def get_credential(self, provider: str) -> Optional[CredentialBundle]:
        return self._credentials.get(provider)

    # Loop frames

    def push_frame(self, frame: LoopFrame) -> None:
        self._frames.append(frame)

    def pop_frame(self) -> Optional[LoopFrame]:
        return self._frames.pop() if self._frames else None

    @property
    def current_frame(self) -> Optional[LoopFrame]:
        return self._frames[-1] if self._frames else None

    def flow_state(self) -> Optional[Dict[str, Any]]:
        frame = self.current_frame
        return frame.to_dict() if frame else None

    # Deadline

    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started

    def remaining_seconds(self) -> Optional[float]:
        if self.deadline_seconds is None:
            return None
        return max(0.0, self.deadline_seconds - self.elapsed_seconds())

    def deadline_exceeded(self) -> bool:
        remaining = self.remaining_seconds()
        return remaining is not None and remaining <= 0


__all__ = ["ExecutionContext", "LoopFrame"]
