"""
API Mapper
==========

Transforms the internal TrafficGraph into the node/link DTO consumed by
force-graph style frontends. Node kinds are erased; only keys travel.
"""
from typing import Any, Dict, Iterable, List

from ..contracts.base import TrafficRecord
from ..core.topology import TrafficGraph


def map_graph_to_dto(graph: TrafficGraph) -> Dict[str, List[Dict[str, Any]]]:
    """
    Map a built graph to `{"nodes": [{"id"}], "links": [{"source", "target"}]}`.

    Nodes and links keep the graph's creation order.
    """
    return {
        "nodes": [{"id": node.key} for node in graph.nodes()],
        "links": [
            {"source": edge.source, "target": edge.target}
            for edge in graph.edges()
        ],
    }


def map_records_to_dto(records: Iterable[TrafficRecord]) -> List[Dict[str, Any]]:
    """Map TrafficRecords to the raw `{method, host, path}` listing."""
    return [record.to_dict() for record in records]
