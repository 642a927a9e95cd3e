"""
Key Index
=========

Get-or-create bookkeeping over a NetworkX directed graph.

Nodes live in the graph under integer handles (an arena); the index maps
every canonical node key and every (source key, target key) edge key to its
handle. Builders address elements by key only, never by holding on to a
previously returned handle, which is what makes repeated and out-of-order
construction converge on the same graph.
"""

from __future__ import annotations
from typing import Dict, Iterator, Optional, Tuple
import networkx as nx

from ..contracts.graph import GraphNode, GraphEdge, NodeKind


NodeHandle = int
EdgeHandle = int
EdgeKey = Tuple[str, str]


class KeyIndex:
    """
    Deduplicating index for topology nodes and edges.

    A key is materialized at most once: a lookup hit returns the existing
    handle, a miss allocates a new arena element and registers it.
    """

    def __init__(self):
        self._graph = nx.DiGraph()
        self._nodes: Dict[str, NodeHandle] = {}
        self._edges: Dict[EdgeKey, EdgeHandle] = {}

    @property
    def graph(self) -> nx.DiGraph:
        """Underlying arena. Node ids are handles; payloads are attributes."""
        return self._graph

    # =========================================================================
    # GET-OR-CREATE
    # =========================================================================

    def get_or_create_node(self, key: str, kind: NodeKind) -> NodeHandle:
        """
        Return the handle for `key`, creating the node on first sight.

        The kind recorded is the one supplied at creation.
        """
        handle = self._nodes.get(key)
        if handle is not None:
            return handle

        handle = len(self._nodes)
        self._graph.add_node(handle, payload=GraphNode(key=key, kind=kind))
        self._nodes[key] = handle
        return handle

    def get_or_create_edge(self, source: str, target: str) -> EdgeHandle:
        """
        Return the handle for the (source, target) edge, creating it on
        first sight. Both endpoint keys must already be registered.
        """
        edge_key = (source, target)
        handle = self._edges.get(edge_key)
        if handle is not None:
            return handle

        handle = len(self._edges)
        self._graph.add_edge(
            self._nodes[source],
            self._nodes[target],
            handle=handle,
            payload=GraphEdge(source=source, target=target),
        )
        self._edges[edge_key] = handle
        return handle

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def has_node(self, key: str) -> bool:
        return key in self._nodes

    def has_edge(self, source: str, target: str) -> bool:
        return (source, target) in self._edges

    def node_handle(self, key: str) -> Optional[NodeHandle]:
        return self._nodes.get(key)

    def edge_handle(self, source: str, target: str) -> Optional[EdgeHandle]:
        return self._edges.get((source, target))

    def node(self, key: str) -> Optional[GraphNode]:
        handle = self._nodes.get(key)
        if handle is None:
            return None
        return self._graph.nodes[handle]["payload"]

    def nodes(self) -> Iterator[GraphNode]:
        """Nodes in creation order."""
        for handle in self._nodes.values():
            yield self._graph.nodes[handle]["payload"]

    def edges(self) -> Iterator[GraphEdge]:
        """Edges in creation order."""
        for source, target in self._edges:
            yield self._graph.edges[self._nodes[source], self._nodes[target]]["payload"]

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    # =========================================================================
    # MERGE
    # =========================================================================

    def merge(self, other: KeyIndex) -> None:
        """
        Fold another index into this one by re-running get-or-create for
        each of its nodes, then each of its edges.

        The resulting key sets are independent of merge order.
        """
        for node in other.nodes():
            self.get_or_create_node(node.key, node.kind)
        for edge in other.edges():
            self.get_or_create_edge(edge.source, edge.target)
