"""
Workflow graph models.

The graph is authored by the visual editor and handed to the engine as-is:
nodes carry an untyped ``data`` map whose shape depends on ``type`` and
``operation``; edges are plain directed links with optional handles used by
router nodes.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TRIGGER_NODE_TYPE = "trigger"
DROP_NODE_TYPE = "drop"


class Node(BaseModel):
    """A single unit of work in a workflow graph."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Node identifier, unique within the graph")
    type: str = Field(..., description="UI-facing node type, e.g. 'gmail' or 'flow'")
    operation: Optional[str] = Field(default=None, description="Optional operation override")
    data: Dict[str, Any] = Field(default_factory=dict, description="Node configuration map")
    position: Optional[Dict[str, float]] = Field(
        default=None, description="Canvas position (ignored by the engine)"
    )

    @property
    def is_trigger(self) -> bool:
        return self.type == TRIGGER_NODE_TYPE

    @property
    def is_drop(self) -> bool:
        return self.type == DROP_NODE_TYPE


class Edge(BaseModel):
    """Directed dependency between two nodes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Edge identifier")
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    source_handle: Optional[str] = Field(
        default=None, alias="sourceHandle", description="Output handle on the source node"
    )
    target_handle: Optional[str] = Field(
        default=None, alias="targetHandle", description="Input handle on the target node"
    )


class WorkflowGraph(BaseModel):
    """Nodes plus edges. Read-only input to the engine."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "WorkflowGraph":
        ids = set()
        for node in self.nodes:
            if node.id in ids:
                raise ValueError(f"Duplicate node id: {node.id}")
            ids.add(node.id)
        for edge in self.edges:
            if edge.source not in ids or edge.target not in ids:
                raise ValueError(
                    f"Edge {edge.id} references unknown node ({edge.source} -> {edge.target})"
                )
        return self

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def trigger_nodes(self) -> List[Node]:
        return [n for n in self.nodes if n.is_trigger]


__all__ = [
    "TRIGGER_NODE_TYPE",
    "DROP_NODE_TYPE",
    "Node",
    "Edge",
    "WorkflowGraph",
]
