"""
Webhook trigger endpoints

POST /api/trigger/{workflow_id} runs a registered workflow with the JSON
request body as trigger input.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from automation_engine.api.dependencies import (
    get_credential_lookup,
    get_engine,
    get_rate_limiter,
    get_registry,
)
from automation_engine.api.models import TriggerInfoResponse
from automation_engine.core.engine import CredentialLookup, ExecutionEngine
from automation_engine.services.rate_limit import SlidingWindowRateLimiter
from automation_engine.services.workflow_registry import WorkflowRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trigger", tags=["Triggers"])

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Try again later."


async def _read_trigger_input(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.post("/{workflow_id}")
async def trigger_workflow(
    workflow_id: str,
    request: Request,
    engine: ExecutionEngine = Depends(get_engine),
    registry: WorkflowRegistry = Depends(get_registry),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
    credentials: CredentialLookup = Depends(get_credential_lookup),
):
    """Execute a workflow from a webhook call"""
    allowed, info = limiter.check(workflow_id)
    if not allowed:
        logger.warning(f"🚦 Rate limit exceeded for workflow {workflow_id}")
        return JSONResponse(
            status_code=429,
            content={"error": RATE_LIMIT_MESSAGE},
            headers={"Retry-After": str(info["retry_after"])},
        )

    trigger_input = await _read_trigger_input(request)

    workflow = registry.get(workflow_id)
    if workflow is None:
        return JSONResponse(status_code=404, content={"error": "Workflow not found"})
    if not workflow.enabled:
        return JSONResponse(status_code=403, content={"error": "Workflow is disabled"})
    if not workflow.graph.nodes:
        return JSONResponse(status_code=400, content={"error": "Workflow has no nodes configured"})

    logger.info(f"📥 Trigger received for workflow {workflow_id}")
    result = await run_in_threadpool(
        engine.run,
        workflow.graph,
        trigger_input,
        credentials,
        workflow_id=workflow_id,
    )

    content = result.to_envelope()
    content["executionId"] = result.execution_id
    return JSONResponse(status_code=200 if result.success else 500, content=content)


@router.get("/{workflow_id}", response_model=TriggerInfoResponse, response_model_by_alias=True)
async def trigger_info(
    workflow_id: str,
    request: Request,
    registry: WorkflowRegistry = Depends(get_registry),
):
    """Describe how to call the webhook for a workflow"""
    workflow = registry.get(workflow_id)
    if workflow is None:
        return JSONResponse(status_code=404, content={"error": "Workflow not found"})
    return TriggerInfoResponse(
        workflow_id=workflow.workflow_id,
        name=workflow.name,
        enabled=workflow.enabled,
        webhook_url=str(request.url),
    )
