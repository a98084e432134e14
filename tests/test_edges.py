"""Edge lifecycle and referential integrity."""

from __future__ import annotations

import pytest

from nexus.errors import NotFoundError, ValidationError
from nexus.graph import Edge, KnowledgeGraph


class TestAddEdge:
    def test_defaults(self, graph: KnowledgeGraph) -> None:
        a = graph.add_node({"title": "A"})
        b = graph.add_node({"title": "B"})
        edge = graph.get_edge(graph.add_edge({"source": a, "target": b}))
        assert isinstance(edge, Edge)
        assert edge.type == "related"
        assert edge.weight == 1.0
        assert edge.bidirectional is False
        assert edge.label == ""
        assert edge.created_at is not None

    def test_generated_id_embeds_endpoints(self, graph: KnowledgeGraph) -> None:
        a = graph.add_node({"id": "a"})
        b = graph.add_node({"id": "b"})
        edge_id = graph.add_edge({"source": a, "target": b})
        prefix, suffix = edge_id.rsplit("-", 1)
        assert prefix == "a-b"
        assert len(suffix) == 8

    def test_explicit_fields_kept(self, graph: KnowledgeGraph) -> None:
        a = graph.add_node({})
        b = graph.add_node({})
        edge_id = graph.add_edge(
            {
                "id": "e1",
                "source": a,
                "target": b,
                "type": "cites",
                "label": "see also",
                "weight": 0.3,
                "bidirectional": True,
                "metadata": {"why": "test"},
            }
        )
        edge = graph.get_edge(edge_id)
        assert edge_id == "e1"
        assert (edge.type, edge.label, edge.weight) == ("cites", "see also", 0.3)
        assert edge.bidirectional is True
        assert edge.metadata == {"why": "test"}

    @pytest.mark.parametrize("data", [None, {}, {"source": "x"}, {"target": "y"}, {"source": "", "target": "y"}])
    def test_missing_endpoint_rejected(self, graph: KnowledgeGraph, data) -> None:
        with pytest.raises(ValidationError, match="source and target"):
            graph.add_edge(data)

    def test_unknown_source_rejected(self, graph: KnowledgeGraph) -> None:
        b = graph.add_node({})
        with pytest.raises(ValidationError, match="Source node not found"):
            graph.add_edge({"source": "ghost", "target": b})
        assert graph.list_edges() == []

    def test_unknown_target_rejected(self, graph: KnowledgeGraph) -> None:
        a = graph.add_node({})
        with pytest.raises(ValidationError, match="Target node not found"):
            graph.add_edge({"source": a, "target": "ghost"})

    def test_duplicate_id_rejected(self, graph: KnowledgeGraph, rust_go: dict[str, str]) -> None:
        with pytest.raises(ValidationError, match="already exists"):
            graph.add_edge({"id": rust_go["edge"], "source": rust_go["a"], "target": rust_go["b"]})


class TestEdgeReadsAndDeletes:
    def test_get_edge_missing(self, graph: KnowledgeGraph) -> None:
        assert graph.get_edge("nope") is None

    def test_get_edges_returns_both_directions(self, graph: KnowledgeGraph, rust_go) -> None:
        assert len(graph.get_edges(rust_go["a"])) == 1
        assert len(graph.get_edges(rust_go["b"])) == 1

    def test_delete_edge(self, graph: KnowledgeGraph, rust_go) -> None:
        assert graph.delete_edge(rust_go["edge"]) is True
        assert graph.get_edge(rust_go["edge"]) is None
        # Endpoints survive.
        assert graph.get_node(rust_go["a"]) is not None

    def test_delete_edge_missing_returns_false(self, graph: KnowledgeGraph) -> None:
        assert graph.delete_edge("nope") is False

    def test_update_edge(self, graph: KnowledgeGraph, rust_go) -> None:
        updated = graph.update_edge(rust_go["edge"], {"label": "inspired", "weight": 2})
        assert updated.label == "inspired"
        assert updated.weight == 2.0
        assert updated.source == rust_go["a"]

    def test_update_edge_missing_raises(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(NotFoundError, match="Edge not found"):
            graph.update_edge("nope", {"label": "x"})

    def test_update_edge_rejects_endpoint_change(self, graph: KnowledgeGraph, rust_go) -> None:
        with pytest.raises(ValidationError):
            graph.update_edge(rust_go["edge"], {"target": rust_go["a"]})


def test_referential_integrity_after_mixed_operations(graph: KnowledgeGraph) -> None:
    ids = [graph.add_node({"title": f"n{i}"}) for i in range(6)]
    for i in range(5):
        graph.add_edge({"source": ids[i], "target": ids[i + 1]})
    graph.add_edge({"source": ids[0], "target": ids[3]})

    graph.delete_node(ids[3])
    graph.delete_node(ids[5])

    for edge in graph.list_edges():
        assert graph.get_node(edge.source) is not None
        assert graph.get_node(edge.target) is not None
    assert len(graph.list_edges()) == 2
