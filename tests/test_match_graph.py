"""Tests for the match graph data structure (modelmatch.graph.models)."""

from __future__ import annotations

import pytest

from modelmatch.api.models import ModelRef
from modelmatch.graph import MatchGraph


def _ref(model_id: str, name: str = "") -> ModelRef:
    return ModelRef(id=model_id, name=name or model_id.upper())


class TestNodes:
    def test_insertion_is_idempotent(self):
        graph = MatchGraph()
        first = graph.add_node(_ref("a"))
        graph.add_node(_ref("b"))
        for _ in range(5):
            assert graph.add_node(_ref("a")) == first
        assert len(graph) == 2
        assert [n.ref.id for n in graph.nodes()] == ["a", "b"]

    def test_indices_increase_from_zero(self):
        graph = MatchGraph()
        assert [graph.add_node(_ref(i)) for i in "xyz"] == [0, 1, 2]

    def test_reinsert_keeps_edges(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        graph.add_node(_ref("b"))
        graph.add_match("a", "b", 0.95)
        graph.add_node(_ref("a"))
        assert graph.edge("a", "b").forward == 0.95

    def test_stub_is_upgraded_in_place(self):
        graph = MatchGraph()
        index = graph.add_node(ModelRef.stub("a"), resolved=False)
        assert graph.add_node(_ref("a", "Gear")) == index
        node = graph.node("a")
        assert node.resolved
        assert node.ref.name == "Gear"

    def test_resolved_node_is_not_downgraded(self):
        graph = MatchGraph()
        graph.add_node(_ref("a", "Gear"))
        graph.add_node(ModelRef.stub("a"), resolved=False)
        assert graph.node("a").resolved
        assert graph.node("a").ref.name == "Gear"


class TestEdges:
    def test_self_match_is_discarded(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        assert graph.add_match("a", "a", 1.0) is None
        assert graph.edge_count == 0

    def test_both_directions_are_kept(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        graph.add_node(_ref("b"))
        graph.add_match("b", "a", 0.91)
        graph.add_match("a", "b", 0.97)

        edge = graph.edge("b", "a")
        assert (edge.a.ref.id, edge.b.ref.id) == ("a", "b")
        assert edge.forward == 0.97
        assert edge.reverse == 0.91
        assert edge.dominant_score == 0.97
        assert graph.edge_count == 1

    def test_reverse_score_from_one_query(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        graph.add_node(_ref("b"))
        graph.add_match("a", "b", 0.92, reverse_score=0.88)
        edge = graph.edge("a", "b")
        assert (edge.forward, edge.reverse) == (0.92, 0.88)

    def test_repeated_direction_keeps_max(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        graph.add_node(_ref("b"))
        graph.add_match("a", "b", 0.92)
        graph.add_match("a", "b", 0.90)
        assert graph.edge("a", "b").forward == 0.92

    def test_unknown_endpoint(self):
        graph = MatchGraph()
        graph.add_node(_ref("a"))
        with pytest.raises(KeyError):
            graph.add_match("a", "zz", 0.9)

    def test_edges_are_ordered_by_index_pair(self):
        graph = MatchGraph()
        for i in "abc":
            graph.add_node(_ref(i))
        graph.add_match("c", "b", 0.9)
        graph.add_match("a", "c", 0.9)
        graph.add_match("b", "a", 0.9)
        assert [e.key for e in graph.edges()] == [(0, 1), (0, 2), (1, 2)]
