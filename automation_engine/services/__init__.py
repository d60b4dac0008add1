from .http_client import HTTPClient, HTTPResponse
from .rate_limit import SlidingWindowRateLimiter, parse_limit
from .workflow_registry import InMemoryWorkflowRegistry, RegisteredWorkflow, WorkflowRegistry

__all__ = [
    "HTTPClient",
    "HTTPResponse",
    "SlidingWindowRateLimiter",
    "parse_limit",
    "InMemoryWorkflowRegistry",
    "RegisteredWorkflow",
    "WorkflowRegistry",
]
