"""The caller-facing knowledge graph.

Construct one per process or session and pass it to whatever needs it::

    from nexus.graph import KnowledgeGraph, RecordStore
    from nexus.storage import InMemoryPersistence

    graph = KnowledgeGraph(RecordStore(InMemoryPersistence()))
    a = graph.add_node({"title": "Rust Ownership", "tags": ["rust"]})
    graph.search("rust").results[0].score   # 5.5
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from nexus.errors import ValidationError
from nexus.graph import edges, insights, nodes, transfer
from nexus.graph.models import Edge, Node
from nexus.graph.nodes import NodeCache
from nexus.graph.schemas import NodeCreate, parse
from nexus.graph.search import SearchPage, search_nodes
from nexus.graph.statistics import GraphStatistics, compute_statistics
from nexus.graph.store import RecordStore
from nexus.graph.transfer import ImportSummary
from nexus.graph.traversal import Traversal, connected_nodes

logger = logging.getLogger(__name__)

AUTO_CONNECT_EDGE_TYPE = "auto-connected"
AUTO_CONNECT_WEIGHT = 0.5


class KnowledgeGraph:
    """Node/edge lifecycle, search, traversal and statistics over one store.

    Mutations raise :class:`~nexus.errors.ValidationError`,
    :class:`~nexus.errors.NotFoundError` or
    :class:`~nexus.errors.PersistenceError`.  Reads (``search``,
    ``get_connected_nodes``, ``get_statistics``) never raise for internal
    faults; their results carry a ``degraded`` flag instead.
    """

    def __init__(self, store: RecordStore, cache: Optional[NodeCache] = None) -> None:
        self.store = store
        self.cache = cache if cache is not None else NodeCache()

    def close(self) -> None:
        """Shut down the store's persistence worker."""
        self.store.close()

    def __enter__(self) -> "KnowledgeGraph":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------
    def add_node(self, data: Any) -> str:
        """Add a node; ``auto_connect`` ids get an ``auto-connected`` edge each."""
        if data is None:
            raise ValidationError("Node data is required")
        payload = parse(NodeCreate, data)
        node_id = nodes.add_node(self.store, payload, self.cache)
        for target_id in payload.auto_connect:
            edges.add_edge(
                self.store,
                {
                    "source": node_id,
                    "target": target_id,
                    "type": AUTO_CONNECT_EDGE_TYPE,
                    "weight": AUTO_CONNECT_WEIGHT,
                },
                self.cache,
            )
        if payload.auto_connect:
            logger.debug("Auto-connected %s to %d nodes", node_id, len(payload.auto_connect))
        return node_id

    def get_node(self, node_id: str) -> Optional[Node]:
        return nodes.get_node(self.store, node_id, self.cache)

    def update_node(self, node_id: str, updates: Any) -> Node:
        return nodes.update_node(self.store, node_id, updates, self.cache)

    def delete_node(self, node_id: str) -> bool:
        return nodes.delete_node(self.store, node_id, self.cache)

    def list_nodes(self) -> list[Node]:
        return nodes.list_nodes(self.store)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------
    def add_edge(self, data: Any) -> str:
        return edges.add_edge(self.store, data, self.cache)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return edges.get_edge(self.store, edge_id)

    def update_edge(self, edge_id: str, updates: Any) -> Edge:
        return edges.update_edge(self.store, edge_id, updates)

    def delete_edge(self, edge_id: str) -> bool:
        return edges.delete_edge(self.store, edge_id)

    def list_edges(self) -> list[Edge]:
        return edges.list_edges(self.store)

    def get_edges(self, node_id: str) -> list[Edge]:
        return edges.get_edges(self.store, node_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def search(self, query: Optional[str] = None, options: Any = None, **overrides: Any) -> SearchPage:
        return search_nodes(self.store.snapshot(), query, options, **overrides)

    def get_connected_nodes(self, node_id: str, options: Any = None, **overrides: Any) -> Traversal:
        return connected_nodes(self.store.snapshot(), node_id, options, **overrides)

    def get_statistics(self) -> GraphStatistics:
        return compute_statistics(self.store.snapshot())

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------
    def get_nodes_for_insight(self, query: Any = None, **overrides: Any) -> list[Node]:
        return insights.get_nodes_for_insight(self.store, query, self.cache, **overrides)

    def add_insight_node(self, data: Any) -> str:
        return insights.add_insight_node(self.store, data, self.cache)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------
    def export_data(self) -> dict[str, Any]:
        return transfer.export_graph(self.store)

    def import_data(self, data: Any) -> ImportSummary:
        return transfer.import_graph(self.store, data)

    def clear_cache(self) -> None:
        self.cache.clear()

    def reload(self) -> None:
        """Re-read the store from persistence and drop cached nodes."""
        self.store.reload()
        self.cache.clear()
