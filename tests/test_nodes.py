"""Node lifecycle: add / get / update / delete, cache behaviour, cascades."""

from __future__ import annotations

import pytest

from nexus.errors import NotFoundError, ValidationError
from nexus.graph import KnowledgeGraph, Node


# ---------------------------------------------------------------------------
# add_node
# ---------------------------------------------------------------------------

class TestAddNode:
    def test_returns_generated_id_and_fills_defaults(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({})
        node = graph.get_node(node_id)
        assert isinstance(node, Node)
        assert node.id == node_id
        assert node.title == "Untitled"
        assert node.source == "manual"
        assert node.content == {}
        assert node.categories == [] and node.tags == []
        assert node.timestamp > 0
        assert node.created_at is not None

    def test_explicit_id_kept(self, graph: KnowledgeGraph) -> None:
        assert graph.add_node({"id": "fixed", "title": "T"}) == "fixed"

    def test_duplicate_id_rejected(self, graph: KnowledgeGraph) -> None:
        graph.add_node({"id": "dup"})
        with pytest.raises(ValidationError, match="already exists"):
            graph.add_node({"id": "dup"})
        assert len(graph.list_nodes()) == 1

    def test_none_rejected(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(ValidationError, match="Node data is required"):
            graph.add_node(None)

    def test_malformed_payload_rejected(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(ValidationError, match="NodeCreate"):
            graph.add_node({"tags": "not-a-list"})

    def test_preview_computed(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node(
            {
                "title": "Article",
                "content": {"text": "z" * 300, "entities": [{"name": "Zed"}]},
                "source": "webpage",
                "timestamp": 1_700_000_000,
            }
        )
        preview = graph.get_node(node_id).preview
        assert preview.title == "Article"
        assert preview.summary.endswith("...")
        assert len(preview.summary) == 153
        assert preview.keywords == ["Zed"]
        assert preview.source == "webpage"
        assert preview.date == 1_700_000_000

    def test_categories_and_tags_deduplicated(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"categories": ["a", "b", "a"], "tags": ["t", "t"]})
        node = graph.get_node(node_id)
        assert node.categories == ["a", "b"]
        assert node.tags == ["t"]

    def test_auto_connect_creates_edges(self, graph: KnowledgeGraph) -> None:
        target = graph.add_node({"title": "target"})
        node_id = graph.add_node({"title": "new", "auto_connect": [target]})
        (edge,) = graph.get_edges(node_id)
        assert edge.source == node_id
        assert edge.target == target
        assert edge.type == "auto-connected"
        assert edge.weight == 0.5

    def test_auto_connect_missing_target_raises(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(ValidationError, match="Target node not found"):
            graph.add_node({"title": "new", "auto_connect": ["ghost"]})


# ---------------------------------------------------------------------------
# get_node
# ---------------------------------------------------------------------------

class TestGetNode:
    def test_not_found(self, graph: KnowledgeGraph) -> None:
        assert graph.get_node("nonexistent") is None

    def test_blank_id_rejected(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(ValidationError):
            graph.get_node("")

    def test_cache_populated_on_add(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "cached"})
        assert node_id in graph.cache

    def test_cache_miss_scans_and_populates(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "cached"})
        graph.clear_cache()
        assert node_id not in graph.cache
        assert graph.get_node(node_id).title == "cached"
        assert node_id in graph.cache

    def test_stale_scan_not_left_in_cache(
        self, graph: KnowledgeGraph, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        node_id = graph.add_node({"title": "gone soon"})
        stale = graph.store.snapshot()
        graph.delete_node(node_id)
        current = graph.store.snapshot()

        # First read scans the pre-delete snapshot, later reads see the current one.
        views = iter([stale])
        monkeypatch.setattr(graph.store, "snapshot", lambda: next(views, current))

        assert graph.get_node(node_id) is not None
        assert node_id not in graph.cache
        assert graph.get_node(node_id) is None


# ---------------------------------------------------------------------------
# update_node
# ---------------------------------------------------------------------------

class TestUpdateNode:
    def test_merges_fields(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "Old", "tags": ["keep"], "url": "https://a"})
        updated = graph.update_node(node_id, {"title": "New"})
        assert updated.title == "New"
        assert updated.tags == ["keep"]
        assert updated.url == "https://a"

    def test_preserves_id_and_created_at(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "Old"})
        created = graph.get_node(node_id)
        updated = graph.update_node(node_id, {"id": "hijack", "title": "New"})
        assert updated.id == node_id
        assert updated.created_at == created.created_at
        assert updated.updated_at >= created.updated_at

    def test_preview_regenerated_on_content_change(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"content": {"summary": "before"}})
        updated = graph.update_node(node_id, {"content": {"summary": "after"}})
        assert updated.preview.summary == "after"

    def test_cache_overwritten(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "Old"})
        graph.get_node(node_id)
        graph.update_node(node_id, {"title": "New"})
        assert graph.get_node(node_id).title == "New"

    def test_missing_node_raises(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(NotFoundError, match="Node not found"):
            graph.update_node("fake-id", {"title": "x"})

    def test_not_found_is_value_error(self, graph: KnowledgeGraph) -> None:
        with pytest.raises(ValueError):
            graph.update_node("fake-id", {"title": "x"})

    def test_unknown_field_raises(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "T"})
        with pytest.raises(ValidationError):
            graph.update_node(node_id, {"nonexistent_field": "x"})


# ---------------------------------------------------------------------------
# delete_node
# ---------------------------------------------------------------------------

class TestDeleteNode:
    def test_delete_existing(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "Delete Me"})
        assert graph.delete_node(node_id) is True
        assert graph.get_node(node_id) is None

    def test_delete_missing_returns_false_and_changes_nothing(self, graph: KnowledgeGraph) -> None:
        graph.add_node({"title": "Stays"})
        before = graph.store.snapshot()
        assert graph.delete_node("not-there") is False
        assert graph.store.snapshot() is before

    def test_cache_evicted(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "x"})
        graph.delete_node(node_id)
        assert node_id not in graph.cache

    def test_cascades_edges(self, graph: KnowledgeGraph, rust_go: dict[str, str]) -> None:
        c = graph.add_node({"title": "C"})
        graph.add_edge({"source": c, "target": rust_go["a"]})
        graph.add_edge({"source": rust_go["b"], "target": c})

        graph.delete_node(rust_go["a"])

        assert graph.get_edges(rust_go["a"]) == []
        assert all(not e.touches(rust_go["a"]) for e in graph.list_edges())
        assert len(graph.list_edges()) == 1

    def test_cascade_reaches_persistence(self, graph: KnowledgeGraph, persistence, rust_go) -> None:
        graph.delete_node(rust_go["a"])
        assert persistence.get_edges() == []
        assert [n.id for n in persistence.get_nodes()] == [rust_go["b"]]
