"""
Traffic Topology Builder
========================

Folds traffic records into a deduplicated directed graph with three layers:

    example.com -> api.example.com              (domain hierarchy)
    api.example.com -> api.example.comv1        (path hierarchy)
    api.example.comv1 -> GET api.example.com/v1 (method leaves)

Every node and edge is created through the KeyIndex, so the result depends
only on the multiset of records: reordering or repeating records changes
nothing, and records sharing a host or path prefix converge on shared
ancestors.

TOTALITY:
=========
Nothing here raises on bad input. Absent fields only shrink a record's
contribution:
- no host          -> nothing at all
- single-label host -> no domain nodes (paths stay unattached)
- no path          -> domain nodes only
- no method        -> no method leaf
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Set, Tuple
import logging

from ..contracts.base import TrafficRecord
from ..contracts.graph import GraphEdge, GraphNode, NodeKind
from .key_index import KeyIndex

logger = logging.getLogger(__name__)


# =============================================================================
# CANONICAL KEYS
# =============================================================================

def host_labels(host: str) -> List[str]:
    return host.split(".")


def has_domain_root(host: str) -> bool:
    """True when the domain builder materializes a node for the bare host."""
    return len(host_labels(host)) >= 2


def path_segments(path: str) -> List[str]:
    """Split a URL path on '/', dropping empty segments."""
    return [segment for segment in path.split("/") if segment]


def path_prefix_key(host: str, segments: List[str], length: int) -> str:
    """Key of the path node covering the first `length` segments."""
    return host + "/".join(segments[:length])


def path_leaf_key(host: str, path: str) -> str:
    """
    Key a method leaf attaches to: the deepest path node, or the bare
    host when the path has no segments.
    """
    return host + "/".join(path_segments(path))


def method_key(method: str, host: str, path: str) -> str:
    return f"{method} {host}{path}"


# =============================================================================
# GRAPH
# =============================================================================

class TrafficGraph:
    """
    Built traffic topology.

    Read-only view over a KeyIndex. Nodes and edges iterate in creation
    order, which is stable for a given input sequence.
    """

    def __init__(self, index: Optional[KeyIndex] = None):
        self._index = index if index is not None else KeyIndex()

    @property
    def index(self) -> KeyIndex:
        return self._index

    def nodes(self) -> List[GraphNode]:
        return list(self._index.nodes())

    def edges(self) -> List[GraphEdge]:
        return list(self._index.edges())

    def node_keys(self) -> Set[str]:
        return {node.key for node in self._index.nodes()}

    def edge_keys(self) -> Set[Tuple[str, str]]:
        return {edge.key for edge in self._index.edges()}

    def nodes_of_kind(self, kind: NodeKind) -> Set[str]:
        return {node.key for node in self._index.nodes() if node.kind is kind}

    def has_node(self, key: str) -> bool:
        return self._index.has_node(key)

    def has_edge(self, source: str, target: str) -> bool:
        return self._index.has_edge(source, target)

    @property
    def is_empty(self) -> bool:
        return self._index.node_count == 0

    def __len__(self) -> int:
        return self._index.node_count

    def merge(self, other: TrafficGraph) -> TrafficGraph:
        """Fold another graph into this one in place and return self."""
        self._index.merge(other.index)
        return self


# =============================================================================
# BUILDER
# =============================================================================

class TrafficGraphBuilder:
    """
    Single-use fold of traffic records into a TrafficGraph.

    Each builder owns a fresh KeyIndex; no state is shared between builds.
    """

    def __init__(self):
        self._index = KeyIndex()
        self._record_count = 0

    def add_record(self, record: TrafficRecord) -> None:
        self._record_count += 1
        host = record.host or None
        path = record.path or None
        method = record.method or None

        if host is None:
            return

        self._add_domain_hierarchy(host)
        if path is None:
            return

        self._add_path_hierarchy(host, path)
        if method is not None:
            self._add_method_leaf(method, host, path)

    def add_records(self, records: Iterable[TrafficRecord]) -> TrafficGraphBuilder:
        for record in records:
            self.add_record(record)
        return self

    def build(self) -> TrafficGraph:
        logger.debug(
            "Built traffic graph from %d records: %d nodes, %d edges",
            self._record_count, self._index.node_count, self._index.edge_count,
        )
        return TrafficGraph(self._index)

    # -------------------------------------------------------------------------
    # Sub-builders
    # -------------------------------------------------------------------------

    def _add_domain_hierarchy(self, host: str) -> None:
        """
        Materialize every suffix of two or more labels, chained from the
        registrable domain down to the full host. A bare top-level label is
        never a node.
        """
        if not has_domain_root(host):
            return
        labels = host_labels(host)
        count = len(labels)

        for start in range(count - 2, -1, -1):
            key = ".".join(labels[start:])
            self._index.get_or_create_node(key, NodeKind.DOMAIN)
            if start < count - 2:
                parent = ".".join(labels[start + 1:])
                self._index.get_or_create_edge(parent, key)

    def _add_path_hierarchy(self, host: str, path: str) -> None:
        """
        Materialize each path prefix under `host`. The first prefix hangs
        off the bare host node when this record's domain hierarchy created
        one, i.e. when the host has two or more labels.
        """
        segments = path_segments(path)
        parent = host if has_domain_root(host) else None

        for length in range(1, len(segments) + 1):
            key = path_prefix_key(host, segments, length)
            self._index.get_or_create_node(key, NodeKind.PATH)
            if parent is not None:
                self._index.get_or_create_edge(parent, key)
            parent = key

    def _add_method_leaf(self, method: str, host: str, path: str) -> None:
        """
        Attach the method leaf to the path leaf built for this record, or
        to the bare host for a segment-less path on a multi-label host.
        Never consults nodes left behind by other records.
        """
        key = method_key(method, host, path)
        self._index.get_or_create_node(key, NodeKind.METHOD)

        if path_segments(path) or has_domain_root(host):
            self._index.get_or_create_edge(path_leaf_key(host, path), key)


# =============================================================================
# ENTRY POINTS
# =============================================================================

def build_traffic_graph(records: Iterable[TrafficRecord]) -> TrafficGraph:
    """Build a fresh topology graph from a sequence of traffic records."""
    return TrafficGraphBuilder().add_records(records).build()


def build_traffic_graph_sharded(
    shards: Iterable[Iterable[TrafficRecord]]
) -> TrafficGraph:
    """
    Build each shard independently, then merge the partial graphs.

    Yields the same node and edge sets as building the concatenated
    shards in a single pass.
    """
    merged = TrafficGraph()
    for shard in shards:
        merged.merge(build_traffic_graph(shard))
    return merged
