"""
Workflow Endpoints

Registration of workflow graphs, single-node and iteration test runs.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from automation_engine.api.dependencies import get_credential_lookup, get_engine, get_registry
from automation_engine.api.models import (
    RegisterWorkflowRequest,
    RegisterWorkflowResponse,
    TestIterationRequest,
    TestNodeRequest,
    TestNodeResponse,
)
from automation_engine.core.engine import CredentialLookup, ExecutionEngine
from automation_engine.models import Node, WorkflowGraph
from automation_engine.services.workflow_registry import RegisteredWorkflow, WorkflowRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["Workflows"])


@router.post("/test-node", response_model=TestNodeResponse)
async def test_node(
    request: TestNodeRequest,
    engine: ExecutionEngine = Depends(get_engine),
    credentials: CredentialLookup = Depends(get_credential_lookup),
):
    """Execute a single node with sample input and mock upstream outputs"""
    if not request.node_id or not request.node_type:
        return JSONResponse(
            status_code=400, content={"error": "Missing required fields: nodeId, nodeType"}
        )

    node = Node(
        id=request.node_id,
        type=request.node_type,
        operation=request.node_data.get("operation"),
        data=request.node_data,
    )
    mocks = [{"nodeId": m.node_id, "output": m.output} for m in request.node_outputs]
    logger.info(f"🧪 Test run requested for node {node.id} ({node.type})")

    result = await run_in_threadpool(engine.test_node, node, request.test_input, mocks, credentials)
    return TestNodeResponse(**result.to_dict())


@router.post("/test-iteration")
async def test_iteration(
    request: TestIterationRequest,
    engine: ExecutionEngine = Depends(get_engine),
    credentials: CredentialLookup = Depends(get_credential_lookup),
):
    """Run an iterator's body once per item with mock upstream outputs"""
    iterator_id = request.iterator_node_id
    if not iterator_id or request.iterator_node_data is None or request.nodes is None or request.edges is None:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields: iteratorNodeId, iteratorNodeData, nodes, edges"},
        )

    existing = next((n for n in request.nodes if n.id == iterator_id), None)
    iterator = Node(
        id=iterator_id,
        type=existing.type if existing else request.iterator_node_type,
        data=request.iterator_node_data,
    )
    nodes = [iterator if n.id == iterator_id else n for n in request.nodes]
    if existing is None:
        nodes.append(iterator)
    # the editor may send edges without ids
    edges = [{"id": f"e{i}", **edge} for i, edge in enumerate(request.edges)]
    try:
        graph = WorkflowGraph(nodes=nodes, edges=edges)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    mocks = [{"nodeId": m.node_id, "output": m.output} for m in request.node_outputs]
    logger.info(f"🧪 Iteration test requested for {iterator_id} ({len(nodes)} nodes)")

    result = await run_in_threadpool(
        engine.test_iteration, graph, iterator_id, request.test_input, mocks, credentials
    )
    return result.to_dict()


@router.put("/{workflow_id}", response_model=RegisterWorkflowResponse, response_model_by_alias=True)
async def register_workflow(
    workflow_id: str,
    request: RegisterWorkflowRequest,
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Register (or replace) a workflow graph"""
    try:
        graph = WorkflowGraph(nodes=request.nodes, edges=request.edges)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    registry.save(
        RegisteredWorkflow(
            workflow_id=workflow_id, name=request.name, enabled=request.enabled, graph=graph
        )
    )
    logger.info(f"✅ Registered workflow {workflow_id} ({len(graph.nodes)} nodes)")
    return RegisterWorkflowResponse(
        workflow_id=workflow_id,
        enabled=request.enabled,
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
    )


@router.delete("/{workflow_id}")
async def delete_workflow(workflow_id: str, registry: WorkflowRegistry = Depends(get_registry)):
    """Remove a registered workflow"""
    if not registry.delete(workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"success": True, "message": f"Workflow {workflow_id} deleted"}
