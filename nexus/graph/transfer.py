"""Export and import of whole collections.

``import_graph`` merges into what is already stored: records whose ids
exist are skipped, and so are edges whose endpoints are found neither in the
store nor in the imported nodes.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from time import time
from typing import Any, Mapping

from nexus.errors import ValidationError
from nexus.graph.models import Edge, Node, generate_preview
from nexus.graph.store import RecordStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


@dataclass
class ImportSummary:
    nodes_added: int
    edges_added: int
    total_nodes: int
    total_edges: int


def export_graph(store: RecordStore) -> dict[str, Any]:
    snapshot = store.snapshot()
    return {
        "nodes": [n.to_dict() for n in snapshot.nodes],
        "edges": [e.to_dict() for e in snapshot.edges],
        "export_date": int(time()),
        "version": EXPORT_VERSION,
    }


def _load_records(items: Any, factory: Any, kind: str) -> list[Any]:
    records = []
    for item in items:
        if not isinstance(item, Mapping):
            raise ValidationError(f"Invalid {kind} record: expected a mapping")
        try:
            records.append(factory(item))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid {kind} record: {exc}", cause=exc) from exc
    return records


def import_graph(store: RecordStore, data: Any) -> ImportSummary:
    """Merge exported *data* into *store*.

    Raises:
        ValidationError: If *data* has no ``nodes`` list or a record is
            malformed.  Nothing is written in that case.
        PersistenceError: If the collaborator fails part-way.
    """
    if not isinstance(data, Mapping) or not isinstance(data.get("nodes"), list):
        raise ValidationError("Invalid import data: 'nodes' list is required")

    nodes: list[Node] = _load_records(data["nodes"], Node.from_dict, "node")
    edges: list[Edge] = _load_records(data.get("edges") or [], Edge.from_dict, "edge")

    with store.transaction() as txn:
        known = {n.id for n in txn.nodes}
        known_edges = {e.id for e in txn.edges}

        new_nodes = []
        for node in nodes:
            if node.id in known:
                continue
            known.add(node.id)
            if node.preview is None:
                node = dataclasses.replace(
                    node,
                    preview=generate_preview(node.title, node.content, node.source, node.timestamp),
                )
            new_nodes.append(node)

        new_edges = []
        for edge in edges:
            if edge.id in known_edges or edge.source not in known or edge.target not in known:
                continue
            known_edges.add(edge.id)
            new_edges.append(edge)

        for node in new_nodes:
            txn.save_node(node)
        for edge in new_edges:
            txn.save_edge(edge)

        summary = ImportSummary(
            nodes_added=len(new_nodes),
            edges_added=len(new_edges),
            total_nodes=len(txn.nodes),
            total_edges=len(txn.edges),
        )

    logger.info("Imported %d nodes and %d edges", summary.nodes_added, summary.edges_added)
    return summary
