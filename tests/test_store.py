"""Record store: snapshots, transactions, persistence failures and timeouts."""

from __future__ import annotations

import time

import pytest

from nexus.errors import PersistenceError
from nexus.graph import KnowledgeGraph, RecordStore
from nexus.graph.models import Node
from nexus.storage import InMemoryPersistence


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FailingSavePersistence(InMemoryPersistence):
    def save_node(self, node: Node) -> None:
        raise OSError("disk full")


class FailingEdgeDeletePersistence(InMemoryPersistence):
    def delete_edge(self, edge_id: str) -> bool:
        raise OSError("quota exceeded")


class SlowPersistence(InMemoryPersistence):
    def save_node(self, node: Node) -> None:
        time.sleep(0.5)
        super().save_node(node)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class TestSnapshots:
    def test_loads_existing_records(self, persistence: InMemoryPersistence) -> None:
        persistence.save_node(Node(id="pre", title="Preloaded"))
        store = RecordStore(persistence, timeout=0)
        assert [n.id for n in store.snapshot().nodes] == ["pre"]

    def test_reader_snapshot_unchanged_by_later_write(self, graph: KnowledgeGraph) -> None:
        graph.add_node({"title": "first"})
        before = graph.store.snapshot()
        graph.add_node({"title": "second"})
        assert len(before.nodes) == 1
        assert len(graph.store.snapshot().nodes) == 2

    def test_snapshot_index_is_read_only(self, graph: KnowledgeGraph) -> None:
        node_id = graph.add_node({"title": "x"})
        with pytest.raises(TypeError):
            graph.store.snapshot().node_index[node_id] = None  # type: ignore[index]

    def test_reload_picks_up_external_writes(
        self, store: RecordStore, persistence: InMemoryPersistence
    ) -> None:
        persistence.save_node(Node(id="outside"))
        assert "outside" not in store.snapshot().node_index
        store.reload()
        assert "outside" in store.snapshot().node_index


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class TestTransactions:
    def test_stamps_created_and_updated(self, store: RecordStore) -> None:
        with store.transaction() as txn:
            saved = txn.save_node(Node(id="n"))
        assert saved.created_at is not None
        assert saved.updated_at == saved.created_at

    def test_resave_keeps_created_at(self, store: RecordStore) -> None:
        with store.transaction() as txn:
            first = txn.save_node(Node(id="n"))
        with store.transaction() as txn:
            second = txn.save_node(Node(id="n", title="changed", created_at=1))
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at

    def test_failed_block_resyncs_from_collaborator(self, store: RecordStore) -> None:
        with pytest.raises(RuntimeError):
            with store.transaction() as txn:
                txn.save_node(Node(id="n"))
                raise RuntimeError("boom")
        # Store resynced from the collaborator, which did receive the write.
        assert "n" in store.snapshot().node_index

    def test_nested_transaction_joins_outer(self, store: RecordStore) -> None:
        with store.transaction() as outer:
            with store.transaction() as inner:
                assert inner is outer
                inner.save_node(Node(id="n"))
            assert "n" not in store.snapshot().node_index
        assert "n" in store.snapshot().node_index


# ---------------------------------------------------------------------------
# Persistence failures
# ---------------------------------------------------------------------------

class TestPersistenceFailures:
    def test_save_failure_surfaces_persistence_error(self) -> None:
        graph = KnowledgeGraph(RecordStore(FailingSavePersistence(), timeout=0))
        with pytest.raises(PersistenceError) as excinfo:
            graph.add_node({"title": "lost"})
        assert isinstance(excinfo.value.cause, OSError)
        assert excinfo.value.retryable is False
        assert graph.list_nodes() == []

    def test_partial_cascade_resyncs_with_collaborator(self) -> None:
        persistence = FailingEdgeDeletePersistence()
        graph = KnowledgeGraph(RecordStore(persistence, timeout=0))
        a = graph.add_node({"title": "A"})
        b = graph.add_node({"title": "B"})
        graph.add_edge({"source": a, "target": b})

        with pytest.raises(PersistenceError):
            graph.delete_node(a)

        # Memory mirrors what the collaborator actually holds.
        assert [n.id for n in graph.store.snapshot().nodes] == [n.id for n in persistence.get_nodes()]
        assert a not in graph.store.snapshot().node_index
        assert graph.get_node(a) is None

    def test_timeout_is_retryable(self) -> None:
        store = RecordStore(SlowPersistence(), timeout=0.05)
        graph = KnowledgeGraph(store)
        try:
            with pytest.raises(PersistenceError) as excinfo:
                graph.add_node({"title": "slow"})
            assert excinfo.value.retryable is True
            assert "timed out" in str(excinfo.value)
        finally:
            store.close()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

class TestLifecycle:
    def test_graph_context_manager_stops_worker(self) -> None:
        with KnowledgeGraph(RecordStore(InMemoryPersistence(), timeout=1.0)) as graph:
            graph.add_node({"title": "x"})
            assert graph.store._executor is not None
        assert graph.store._executor is None

    def test_close_is_idempotent(self) -> None:
        graph = KnowledgeGraph(RecordStore(InMemoryPersistence(), timeout=1.0))
        graph.close()
        graph.close()
        # Writes still work, now inline.
        assert graph.get_node(graph.add_node({"title": "after close"})) is not None
