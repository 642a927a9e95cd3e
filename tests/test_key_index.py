"""
Key Index Tests
===============

Get-or-create semantics over the NetworkX arena.
"""

import pytest

from ohm.contracts.graph import GraphEdge, GraphNode, NodeKind
from ohm.core.key_index import KeyIndex


class TestGetOrCreate:

    def test_node_hit_reuses_handle(self):
        index = KeyIndex()

        first = index.get_or_create_node("example.com", NodeKind.DOMAIN)
        second = index.get_or_create_node("example.com", NodeKind.DOMAIN)

        assert first == second
        assert index.node_count == 1
        assert index.graph.number_of_nodes() == 1

    def test_first_kind_wins(self):
        index = KeyIndex()
        index.get_or_create_node("example.com", NodeKind.DOMAIN)
        index.get_or_create_node("example.com", NodeKind.PATH)

        assert index.node("example.com") == GraphNode("example.com", NodeKind.DOMAIN)

    def test_edge_hit_reuses_handle(self):
        index = KeyIndex()
        index.get_or_create_node("example.com", NodeKind.DOMAIN)
        index.get_or_create_node("api.example.com", NodeKind.DOMAIN)

        first = index.get_or_create_edge("example.com", "api.example.com")
        second = index.get_or_create_edge("example.com", "api.example.com")

        assert first == second
        assert index.edge_count == 1
        assert index.graph.number_of_edges() == 1

    def test_edge_direction_is_part_of_key(self):
        index = KeyIndex()
        index.get_or_create_node("a", NodeKind.PATH)
        index.get_or_create_node("b", NodeKind.PATH)

        index.get_or_create_edge("a", "b")

        assert index.has_edge("a", "b")
        assert not index.has_edge("b", "a")

    def test_edge_requires_registered_endpoints(self):
        index = KeyIndex()
        index.get_or_create_node("a", NodeKind.PATH)

        with pytest.raises(KeyError):
            index.get_or_create_edge("a", "missing")
        assert index.edge_count == 0

    def test_lookups_on_missing_keys(self):
        index = KeyIndex()

        assert index.node("nope") is None
        assert index.node_handle("nope") is None
        assert index.edge_handle("a", "b") is None
        assert not index.has_node("nope")


class TestIteration:

    def test_creation_order(self):
        index = KeyIndex()
        for key in ("c", "a", "b"):
            index.get_or_create_node(key, NodeKind.PATH)
        index.get_or_create_edge("c", "a")
        index.get_or_create_edge("a", "b")

        assert [n.key for n in index.nodes()] == ["c", "a", "b"]
        assert list(index.edges()) == [GraphEdge("c", "a"), GraphEdge("a", "b")]

    def test_arena_payloads(self):
        index = KeyIndex()
        handle = index.get_or_create_node("GET x/y", NodeKind.METHOD)

        assert index.graph.nodes[handle]["payload"].kind is NodeKind.METHOD


class TestMerge:

    def _index(self, *chain):
        index = KeyIndex()
        for key in chain:
            index.get_or_create_node(key, NodeKind.DOMAIN)
        for parent, child in zip(chain, chain[1:]):
            index.get_or_create_edge(parent, child)
        return index

    def test_merge_deduplicates_shared_keys(self):
        left = self._index("example.com", "a.example.com")
        right = self._index("example.com", "b.example.com")

        left.merge(right)

        assert {n.key for n in left.nodes()} == {
            "example.com", "a.example.com", "b.example.com"
        }
        assert left.edge_count == 2

    def test_merge_is_commutative_on_keys(self):
        one = self._index("example.com", "a.example.com")
        one.merge(self._index("example.com", "b.example.com"))
        two = self._index("example.com", "b.example.com")
        two.merge(self._index("example.com", "a.example.com"))

        assert {n.key for n in one.nodes()} == {n.key for n in two.nodes()}
        assert {e.key for e in one.edges()} == {e.key for e in two.edges()}

    def test_merge_with_self_copy_is_noop(self):
        index = self._index("example.com", "a.example.com")
        index.merge(self._index("example.com", "a.example.com"))

        assert index.node_count == 2
        assert index.edge_count == 1
