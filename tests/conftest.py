"""Shared fixtures.

Every test gets a fresh in-memory collaborator, so tests are isolated and
nothing is written to ``~/.nexus_data``.
"""

from __future__ import annotations

from typing import Generator

import pytest

from nexus.graph import KnowledgeGraph, RecordStore
from nexus.storage import InMemoryPersistence


@pytest.fixture()
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence()


@pytest.fixture()
def store(persistence: InMemoryPersistence) -> Generator[RecordStore, None, None]:
    record_store = RecordStore(persistence)
    yield record_store
    record_store.close()


@pytest.fixture()
def graph(store: RecordStore) -> KnowledgeGraph:
    return KnowledgeGraph(store)


@pytest.fixture()
def rust_go(graph: KnowledgeGraph) -> dict[str, str]:
    """Two nodes joined by one ``related`` edge A -> B."""
    a = graph.add_node({"title": "Rust Ownership", "tags": ["rust"], "timestamp": 1_700_000_000})
    b = graph.add_node({"title": "Go Concurrency", "tags": ["go"], "timestamp": 1_700_000_100})
    e = graph.add_edge({"source": a, "target": b, "type": "related"})
    return {"a": a, "b": b, "edge": e}
