"""
Request/Response models for the Automation Engine HTTP API
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from automation_engine.models import Edge, Node


class HealthResponse(BaseModel):
    """Health check response"""

    status: str
    version: str
    uptime_seconds: float
    service: str


class ErrorResponse(BaseModel):
    error: str


# ============================================================================
# Workflow registration
# ============================================================================


class RegisterWorkflowRequest(BaseModel):
    """Graph plus enabled flag, as saved by the editor"""

    name: Optional[str] = None
    enabled: bool = True
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class RegisterWorkflowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId")
    enabled: bool
    node_count: int = Field(..., alias="nodeCount")
    edge_count: int = Field(..., alias="edgeCount")


class TriggerInfoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workflow_id: str = Field(..., alias="workflowId")
    name: Optional[str] = None
    enabled: bool
    webhook_url: str = Field(..., alias="webhookUrl")
    method: str = "POST"
    content_type: str = Field(default="application/json", alias="contentType")
    description: str = "Send a POST request with JSON body to trigger this workflow"


# ============================================================================
# Single node testing
# ============================================================================


class MockNodeOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(..., alias="nodeId")
    output: Any = None


class TestNodeRequest(BaseModel):
    """Run one node with sample input and mock upstream outputs"""

    __test__ = False
    model_config = ConfigDict(populate_by_name=True)

    node_id: Optional[str] = Field(default=None, alias="nodeId")
    node_type: Optional[str] = Field(default=None, alias="nodeType")
    node_data: Dict[str, Any] = Field(default_factory=dict, alias="nodeData")
    test_input: Dict[str, Any] = Field(default_factory=dict, alias="testInput")
    node_outputs: List[MockNodeOutput] = Field(default_factory=list, alias="nodeOutputs")


class TestNodeResponse(BaseModel):
    __test__ = False

    success: bool
    output: Any = None
    error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Iteration testing
# ============================================================================


class TestIterationRequest(BaseModel):
    """Run an iterator, its body per item and its end node with mock upstream outputs"""

    __test__ = False
    model_config = ConfigDict(populate_by_name=True)

    iterator_node_id: Optional[str] = Field(default=None, alias="iteratorNodeId")
    iterator_node_type: str = Field(default="flow", alias="iteratorNodeType")
    iterator_node_data: Optional[Dict[str, Any]] = Field(default=None, alias="iteratorNodeData")
    nodes: Optional[List[Node]] = None
    edges: Optional[List[Dict[str, Any]]] = None
    test_input: Dict[str, Any] = Field(default_factory=dict, alias="testInput")
    node_outputs: List[MockNodeOutput] = Field(default_factory=list, alias="nodeOutputs")
