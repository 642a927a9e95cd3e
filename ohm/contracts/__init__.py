"""
Shared contracts for every OHM layer.

All types are immutable. Layers import from here, never from each other's
implementations.
"""

from .base import (
    ErrorCode,
    Error,
    MalformedRecordError,
    TrafficRecord,
    TrafficQueryResult,
)
from .graph import NodeKind, GraphNode, GraphEdge

__all__ = [
    "ErrorCode",
    "Error",
    "MalformedRecordError",
    "TrafficRecord",
    "TrafficQueryResult",
    "NodeKind",
    "GraphNode",
    "GraphEdge",
]
