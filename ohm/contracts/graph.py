"""
Graph Contracts

Node and edge payloads stored in the topology arena.

A node's identity is its canonical key. The kind is carried alongside so
that structural invariants stay checkable, even though the serialized view
only exposes keys.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class NodeKind(Enum):
    """The three disjoint node categories of a traffic topology."""
    DOMAIN = "domain"   # dot-joined suffix of host labels
    PATH = "path"       # host + '/'-joined prefix of path segments
    METHOD = "method"   # "METHOD " + host + path, always a leaf


@dataclass(frozen=True)
class GraphNode:
    """Immutable topology node."""
    key: str
    kind: NodeKind


@dataclass(frozen=True)
class GraphEdge:
    """
    Directed parent -> child link.

    The source is always structurally less specific than the target.
    """
    source: str
    target: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.target)
