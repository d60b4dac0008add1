"""Workflow registry used by the HTTP surface.

Only an in-memory implementation is provided; durable storage is left to
the host application.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from automation_engine.models import WorkflowGraph


class RegisteredWorkflow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId")
    name: Optional[str] = None
    enabled: bool = True
    graph: WorkflowGraph = Field(default_factory=WorkflowGraph)


class WorkflowRegistry:
    def save(self, workflow: RegisteredWorkflow) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def get(self, workflow_id: str) -> Optional[RegisteredWorkflow]:  # pragma: no cover - interface
        raise NotImplementedError

    def delete(self, workflow_id: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def list(self) -> List[RegisteredWorkflow]:  # pragma: no cover - interface
        raise NotImplementedError


class InMemoryWorkflowRegistry(WorkflowRegistry):
    def __init__(self) -> None:
        self._data: Dict[str, RegisteredWorkflow] = {}
        self._lock = threading.Lock()

    def save(self, workflow: RegisteredWorkflow) -> None:
        with self._lock:
            self._data[workflow.workflow_id] = workflow

    def get(self, workflow_id: str) -> Optional[RegisteredWorkflow]:
        with self._lock:
            return self._data.get(workflow_id)

    def delete(self, workflow_id: str) -> bool:
        with self._lock:
            return self._data.pop(workflow_id, None) is not None

    def list(self) -> List[RegisteredWorkflow]:
        with self._lock:
            return sorted(self._data.values(), key=lambda w: w.workflow_id)


__all__ = ["RegisteredWorkflow", "WorkflowRegistry", "InMemoryWorkflowRegistry"]
