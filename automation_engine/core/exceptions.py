"""Engine-specific exceptions for automation_engine (core)."""

from __future__ import annotations

from typing import Any, Dict, Optional


class EngineError(Exception):
    pass


class GraphError(EngineError):
    pass


class ConfigurationError(GraphError):
    pass


class MissingTriggerError(ConfigurationError):
    pass


class MultipleTriggerError(ConfigurationError):
    pass


class CycleError(GraphError):
    pass


class ResolutionError(EngineError):
    pass


class CredentialError(EngineError):
    pass


class DeadlineExceeded(EngineError):
    pass


class AdapterError(EngineError):
    """Raised inside an adapter; converted to an OperationResult at its boundary."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        retryable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.details = details


__all__ = [
    "EngineError",
    "GraphError",
    "ConfigurationError",
    "MissingTriggerError",
    "MultipleTriggerError",
    "CycleError",
    "ResolutionError",
    "CredentialError",
    "DeadlineExceeded",
    "AdapterError",
]
