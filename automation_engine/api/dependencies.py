"""
Service instances shared by the API routers.

Each getter is a FastAPI dependency; tests swap them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from automation_engine.config import get_settings
from automation_engine.core.engine import CredentialLookup, ExecutionEngine
from automation_engine.services.credentials import EnvCredentialStore
from automation_engine.services.rate_limit import SlidingWindowRateLimiter
from automation_engine.services.workflow_registry import InMemoryWorkflowRegistry, WorkflowRegistry


@lru_cache()
def get_engine() -> ExecutionEngine:
    return ExecutionEngine(settings=get_settings())


@lru_cache()
def get_registry() -> WorkflowRegistry:
    return InMemoryWorkflowRegistry()


@lru_cache()
def get_rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(get_settings().rate_limit)


@lru_cache()
def get_credential_lookup() -> CredentialLookup:
    return EnvCredentialStore(get_settings())


def reset_dependencies() -> None:
    for getter in (get_engine, get_registry, get_rate_limiter, get_credential_lookup):
        getter.cache_clear()


__all__ = [
    "get_engine",
    "get_registry",
    "get_rate_limiter",
    "get_credential_lookup",
    "reset_dependencies",
]
