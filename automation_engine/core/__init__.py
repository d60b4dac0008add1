from .context import ExecutionContext, LoopFrame
from .engine import CredentialLookup, ExecutionEngine
from .exceptions import (
    AdapterError,
    ConfigurationError,
    CredentialError,
    CycleError,
    DeadlineExceeded,
    EngineError,
    GraphError,
    ResolutionError,
)
from .graph import ExecutionGraph
from .interpolation import interpolate
from .resolver import NodeResolution, resolve

__all__ = [
    "ExecutionEngine",
    "ExecutionContext",
    "ExecutionGraph",
    "LoopFrame",
    "CredentialLookup",
    "NodeResolution",
    "interpolate",
    "resolve",
    "EngineError",
    "GraphError",
    "ConfigurationError",
    "CycleError",
    "ResolutionError",
    "CredentialError",
    "DeadlineExceeded",
    "AdapterError",
]
