"""
Workflow graph utilities for the execution engine.
"""

from __future__ import annotations

import heapq
from collections import defaultdict, deque
from typing import Dict, Iterable, List

from automation_engine.core.exceptions import CycleError, MissingTriggerError, MultipleTriggerError
from automation_engine.models import Edge, Node, WorkflowGraph


class ExecutionGraph:
    """Directed graph built from WorkflowGraph.edges.

    - Nodes are identified by node.id
    - Adjacency keeps edge declaration order, which drives tie-breaking
    """

    def __init__(self, workflow: WorkflowGraph):
        self.workflow = workflow
        self.nodes: Dict[str, Node] = {n.id: n for n in workflow.nodes}
        self.adjacency_list: Dict[str, List[Edge]] = defaultdict(list)
        self.reverse_adjacency_list: Dict[str, List[Edge]] = defaultdict(list)
        self._build()

    def _build(self) -> None:
        for edge in self.workflow.edges:
            self.adjacency_list[edge.source].append(edge)
            self.reverse_adjacency_list[edge.target].append(edge)

    def successors(self, node_id: str) -> List[Edge]:
        return self.adjacency_list.get(node_id, [])

    def predecessors(self, node_id: str) -> List[Edge]:
        return self.reverse_adjacency_list.get(node_id, [])

    def find_trigger(self) -> Node:
        triggers = self.workflow.trigger_nodes()
        if not triggers:
            raise MissingTriggerError("Workflow must have a trigger node")
        if len(triggers) > 1:
            ids = ", ".join(t.id for t in triggers)
            raise MultipleTriggerError(f"Workflow must have exactly one trigger node, found: {ids}")
        return triggers[0]

    def reachable_from(self, roots: Iterable[str]) -> List[str]:
        """BFS discovery order; the visited set guards against revisits."""
        seen = set()
        order: List[str] = []
        queue = deque(roots)
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            for edge in self.adjacency_list.get(current, []):
                if edge.target not in seen:
                    queue.append(edge.target)
        return order

    def topo_order(self, root: str) -> List[str]:
        """Kahn topological order over the nodes reachable from ``root``.

        Ready nodes are taken in BFS discovery order, so a linear chain comes
        out exactly as a breadth-first walk would visit it. Raises CycleError
        if the reachable subgraph is cyclic.
        """
        discovered = self.reachable_from([root])
        rank = {node_id: i for i, node_id in enumerate(discovered)}
        in_degree = {node_id: 0 for node_id in discovered}
        for node_id in discovered:
            for edge in self.adjacency_list.get(node_id, []):
                in_degree[edge.target] += 1

        ready = [(rank[n], n) for n, deg in in_degree.items() if deg == 0]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            _, current = heapq.heappop(ready)
            order.append(current)
            for edge in self.adjacency_list.get(current, []):
                in_degree[edge.target] -= 1
                if in_degree[edge.target] == 0:
                    heapq.heappush(ready, (rank[edge.target], edge.target))

        if len(order) != len(discovered):
            stuck = sorted(n for n, deg in in_degree.items() if deg > 0)
            raise CycleError(f"Workflow graph contains a cycle involving: {', '.join(stuck)}")
        return order

    def execution_order(self, root: str) -> List[str]:
        """Topological order with no-op ``drop`` nodes removed."""
        return [n for n in self.topo_order(root) if not self.nodes[n].is_drop]


__all__ = ["ExecutionGraph"]
