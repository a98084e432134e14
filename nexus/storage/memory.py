"""Dict-backed persistence for tests and throwaway sessions."""

from __future__ import annotations

import threading

from nexus.graph.models import Edge, Node


class InMemoryPersistence:
    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._lock = threading.Lock()

    def get_nodes(self) -> list[Node]:
        with self._lock:
            return list(self._nodes.values())

    def get_edges(self) -> list[Edge]:
        with self._lock:
            return list(self._edges.values())

    def save_node(self, node: Node) -> None:
        # Re-assigning an existing key keeps its insertion position.
        with self._lock:
            self._nodes[node.id] = node

    def save_edge(self, edge: Edge) -> None:
        with self._lock:
            self._edges[edge.id] = edge

    def delete_node(self, node_id: str) -> bool:
        with self._lock:
            return self._nodes.pop(node_id, None) is not None

    def delete_edge(self, edge_id: str) -> bool:
        with self._lock:
            return self._edges.pop(edge_id, None) is not None
