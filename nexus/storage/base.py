from __future__ import annotations

from typing import Protocol

from nexus.graph.models import Edge, Node


class Persistence(Protocol):
    """Abstraction for the backing record store.

    Each call is expected to be atomic for the record it touches.  Saving a
    record whose id already exists replaces it in place, keeping its position
    in collection order.
    """

    def get_nodes(self) -> list[Node]: ...

    def get_edges(self) -> list[Edge]: ...

    def save_node(self, node: Node) -> None: ...

    def save_edge(self, edge: Edge) -> None: ...

    def delete_node(self, node_id: str) -> bool: ...

    def delete_edge(self, edge_id: str) -> bool: ...
