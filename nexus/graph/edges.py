"""Lifecycle operations for edges."""

from __future__ import annotations

import logging
import uuid
from time import time
from typing import Any, Mapping, Optional

from nexus.errors import NotFoundError, ValidationError
from nexus.graph.models import DEFAULT_EDGE_TYPE, Edge, merge_edge
from nexus.graph.nodes import NodeCache, get_node
from nexus.graph.schemas import EdgeCreate, EdgeUpdate, parse, parse_update
from nexus.graph.store import RecordStore
from nexus.graph.traversal import incident_edges

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _require_id(edge_id: Any) -> str:
    if not edge_id or not isinstance(edge_id, str):
        raise ValidationError("Edge ID is required")
    return edge_id


def make_edge_id(source: str, target: str) -> str:
    return f"{source}-{target}-{uuid.uuid4().hex[:8]}"


def build_edge(payload: EdgeCreate) -> Edge:
    return Edge(
        id=payload.id or make_edge_id(payload.source, payload.target),
        source=payload.source,
        target=payload.target,
        type=payload.type or DEFAULT_EDGE_TYPE,
        label=payload.label,
        weight=payload.weight,
        bidirectional=payload.bidirectional,
        metadata=dict(payload.metadata),
        timestamp=payload.timestamp or int(time()),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def add_edge(
    store: RecordStore,
    data: Any,
    cache: Optional[NodeCache] = None,
) -> str:
    """Create an edge from ``data["source"]`` to ``data["target"]``.

    Both endpoints are resolved through :func:`~nexus.graph.nodes.get_node`
    before anything is written.

    Raises:
        ValidationError: If an endpoint is missing or does not exist, or the
            edge id is already taken.
        PersistenceError: If the collaborator fails.
    """
    if data is None or (
        isinstance(data, Mapping) and (not data.get("source") or not data.get("target"))
    ):
        raise ValidationError("Edge must have source and target node IDs")
    edge = build_edge(parse(EdgeCreate, data))

    if get_node(store, edge.source, cache) is None:
        raise ValidationError(f"Source node not found: {edge.source!r}")
    if get_node(store, edge.target, cache) is None:
        raise ValidationError(f"Target node not found: {edge.target!r}")

    with store.transaction() as txn:
        # Endpoints may have gone between the lookups and taking the lock.
        if txn.get_node(edge.source) is None or txn.get_node(edge.target) is None:
            raise ValidationError("Edge endpoint was deleted concurrently")
        if txn.get_edge(edge.id) is not None:
            raise ValidationError(f"Edge already exists: {edge.id!r}")
        saved = txn.save_edge(edge)

    logger.debug("Added edge %s (%s)", saved.id, saved.type)
    return saved.id


def get_edge(store: RecordStore, edge_id: str) -> Optional[Edge]:
    """Fetch a single edge by id.  Returns ``None`` if not found."""
    _require_id(edge_id)
    return store.snapshot().edge_index.get(edge_id)


def update_edge(store: RecordStore, edge_id: str, updates: Any) -> Edge:
    """Merge *updates* onto an existing edge.  Endpoints cannot change.

    Raises:
        NotFoundError: If ``edge_id`` does not exist.
        ValidationError: If *updates* names an unknown field.
    """
    _require_id(edge_id)
    fields = parse_update(EdgeUpdate, updates or {})

    with store.transaction() as txn:
        existing = txn.get_edge(edge_id)
        if existing is None:
            raise NotFoundError(f"Edge not found: {edge_id!r}")
        return txn.save_edge(merge_edge(existing, fields))


def delete_edge(store: RecordStore, edge_id: str) -> bool:
    """Delete an edge.  Returns ``False`` if it does not exist."""
    _require_id(edge_id)
    with store.transaction() as txn:
        return txn.delete_edge(edge_id)


def list_edges(store: RecordStore) -> list[Edge]:
    return list(store.snapshot().edges)


def get_edges(store: RecordStore, node_id: str) -> list[Edge]:
    """Return all edges where *node_id* is the source **or** the target."""
    return incident_edges(store.snapshot().edges, node_id)
