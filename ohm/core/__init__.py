"""
Core Topology Engine

RESPONSIBILITY: Key-indexed graph construction from traffic records
ALLOWED INPUTS: Sequences of TrafficRecord
OUTPUTS: TrafficGraph (fresh per build, discarded after serialization)

WHAT THIS LAYER MUST NOT DO:
============================
- Perform I/O or talk to the traffic store
- Raise on absent or malformed record fields
- Compute analytics (counts, timing, status codes)
"""

from .key_index import KeyIndex
from .topology import (
    TrafficGraph,
    TrafficGraphBuilder,
    build_traffic_graph,
    build_traffic_graph_sharded,
)

__all__ = [
    "KeyIndex",
    "TrafficGraph",
    "TrafficGraphBuilder",
    "build_traffic_graph",
    "build_traffic_graph_sharded",
]
