"""Lifecycle operations for nodes."""

from __future__ import annotations

import logging
import threading
import uuid
from time import time
from typing import Any, Optional

from nexus.errors import NotFoundError, ValidationError
from nexus.graph.models import (
    DEFAULT_SOURCE,
    DEFAULT_TITLE,
    Node,
    generate_preview,
    merge_node,
    unique,
)
from nexus.graph.schemas import NodeCreate, NodeUpdate, parse, parse_update
from nexus.graph.store import RecordStore
from nexus.graph.traversal import incident_edges

logger = logging.getLogger(__name__)


class NodeCache:
    """Read-through cache of nodes keyed by id.

    Not a source of truth: entries are overwritten on update and evicted on
    delete before the mutating call returns.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Node] = {}
        self._lock = threading.Lock()

    def get(self, node_id: str) -> Optional[Node]:
        with self._lock:
            return self._entries.get(node_id)

    def put(self, node: Node) -> None:
        with self._lock:
            self._entries[node.id] = node

    def evict(self, node_id: str) -> None:
        with self._lock:
            self._entries.pop(node_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _require_id(node_id: Any) -> str:
    if not node_id or not isinstance(node_id, str):
        raise ValidationError("Node ID is required")
    return node_id


def build_node(payload: NodeCreate) -> Node:
    """Turn a validated creation payload into a node with defaults filled."""
    title = payload.title or DEFAULT_TITLE
    source = payload.source or DEFAULT_SOURCE
    timestamp = payload.timestamp or int(time())
    return Node(
        id=payload.id or str(uuid.uuid4()),
        title=title,
        content=dict(payload.content),
        url=payload.url,
        timestamp=timestamp,
        source=source,
        metadata=dict(payload.metadata),
        categories=unique(payload.categories),
        tags=unique(payload.tags),
        preview=generate_preview(title, payload.content, source, timestamp),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def add_node(
    store: RecordStore,
    data: Any,
    cache: Optional[NodeCache] = None,
) -> str:
    """Insert a new node and return its id.

    Args:
        store: The record store.
        data: A :class:`~nexus.graph.schemas.NodeCreate` or a mapping with
            the same keys.  Every field is optional.
        cache: Lookup cache to populate with the new node.

    Raises:
        ValidationError: If *data* is missing/malformed or the id is taken.
        PersistenceError: If the collaborator fails.
    """
    if data is None:
        raise ValidationError("Node data is required")
    node = build_node(parse(NodeCreate, data))

    with store.transaction() as txn:
        if txn.get_node(node.id) is not None:
            raise ValidationError(f"Node already exists: {node.id!r}")
        saved = txn.save_node(node)

    if cache is not None:
        cache.put(saved)
    logger.debug("Added node %s (%s)", saved.id, saved.title)
    return saved.id


def get_node(
    store: RecordStore,
    node_id: str,
    cache: Optional[NodeCache] = None,
) -> Optional[Node]:
    """Fetch a single node by id.  Returns ``None`` if not found.

    A cache hit returns immediately; a miss scans the node collection and
    caches what it finds.  The entry is dropped again if a concurrent write
    replaced the snapshot between the scan and the put.
    """
    _require_id(node_id)
    if cache is not None:
        cached = cache.get(node_id)
        if cached is not None:
            return cached

    node = next((n for n in store.snapshot().nodes if n.id == node_id), None)
    if node is not None and cache is not None:
        cache.put(node)
        if store.snapshot().node_index.get(node_id) is not node:
            cache.evict(node_id)
    return node


def update_node(
    store: RecordStore,
    node_id: str,
    updates: Any,
    cache: Optional[NodeCache] = None,
) -> Node:
    """Merge *updates* onto an existing node and return the new record.

    Allowed fields are those of :class:`~nexus.graph.schemas.NodeUpdate`.
    ``id``, ``preview``, ``created_at`` and ``updated_at`` are ignored if
    present.  ``updated_at`` is always refreshed; the preview is regenerated
    when ``title`` or ``content`` is updated.

    Raises:
        NotFoundError: If ``node_id`` does not exist.
        ValidationError: If *updates* names an unknown field.
    """
    _require_id(node_id)
    fields = parse_update(NodeUpdate, updates or {})

    with store.transaction() as txn:
        existing = txn.get_node(node_id)
        if existing is None:
            raise NotFoundError(f"Node not found: {node_id!r}")
        saved = txn.save_node(merge_node(existing, fields))

    if cache is not None:
        cache.put(saved)
    logger.debug("Updated node %s fields=%s", node_id, sorted(fields))
    return saved


def delete_node(
    store: RecordStore,
    node_id: str,
    cache: Optional[NodeCache] = None,
) -> bool:
    """Delete a node and every edge that references it.

    Returns ``False`` (and changes nothing) if the node does not exist.
    """
    _require_id(node_id)
    try:
        with store.transaction() as txn:
            if txn.get_node(node_id) is None:
                return False
            txn.delete_node(node_id)
            cascade = incident_edges(txn.edges, node_id)
            for edge in cascade:
                txn.delete_edge(edge.id)
    finally:
        # Also on a failed cascade: the store has resynced without the node.
        if cache is not None:
            cache.evict(node_id)

    logger.debug("Deleted node %s and %d edges", node_id, len(cascade))
    return True


def list_nodes(store: RecordStore) -> list[Node]:
    """Return all nodes in insertion order."""
    return list(store.snapshot().nodes)
