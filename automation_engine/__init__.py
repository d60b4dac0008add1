"""
automation_engine

Sequential execution engine for visual automation workflows: a trigger
node, a graph of provider nodes, and an auditable execution log.
"""

from .core.engine import ExecutionEngine

__all__ = ["ExecutionEngine"]
