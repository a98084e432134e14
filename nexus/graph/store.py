"""In-memory record store over a persistence collaborator.

The store owns the canonical node and edge collections.  Readers get an
immutable :class:`GraphSnapshot`; writers go through
:meth:`RecordStore.transaction`, which is the only critical section::

    with store.transaction() as txn:
        if txn.get_node(node_id) is not None:
            txn.save_node(updated)

Every write inside the block is sent to the collaborator immediately (with a
timeout).  The new snapshot is swapped in only when the block exits cleanly,
so a reader never sees half of a mutation.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from time import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Mapping, Optional

from nexus.config import settings
from nexus.errors import PersistenceError
from nexus.graph.models import Edge, Node

if TYPE_CHECKING:
    from nexus.storage.base import Persistence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """An immutable view of both collections, in insertion order."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    node_index: Mapping[str, Node] = field(default_factory=lambda: MappingProxyType({}))
    edge_index: Mapping[str, Edge] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> "GraphSnapshot":
        node_index = {n.id: n for n in nodes}
        edge_index = {e.id: e for e in edges}
        return cls(
            nodes=tuple(node_index.values()),
            edges=tuple(edge_index.values()),
            node_index=MappingProxyType(node_index),
            edge_index=MappingProxyType(edge_index),
        )


class Transaction:
    """Staged view of the collections for one mutating operation."""

    def __init__(self, store: "RecordStore", snapshot: GraphSnapshot) -> None:
        self._store = store
        self._nodes: dict[str, Node] = dict(snapshot.node_index)
        self._edges: dict[str, Edge] = dict(snapshot.edge_index)
        self.dirty = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def save_node(self, node: Node) -> Node:
        """Persist *node* (insert or replace) and return the stamped record."""
        stamped = _stamp(node, self._nodes.get(node.id))
        self._store._call("save_node", stamped)
        self.dirty = True
        self._nodes[stamped.id] = stamped
        return stamped

    def save_edge(self, edge: Edge) -> Edge:
        stamped = _stamp(edge, self._edges.get(edge.id))
        self._store._call("save_edge", stamped)
        self.dirty = True
        self._edges[stamped.id] = stamped
        return stamped

    def delete_node(self, node_id: str) -> bool:
        """Remove one node record.  Edge cascade is the caller's job."""
        if node_id not in self._nodes:
            return False
        self._store._call("delete_node", node_id)
        self.dirty = True
        del self._nodes[node_id]
        return True

    def delete_edge(self, edge_id: str) -> bool:
        if edge_id not in self._edges:
            return False
        self._store._call("delete_edge", edge_id)
        self.dirty = True
        del self._edges[edge_id]
        return True

    def to_snapshot(self) -> GraphSnapshot:
        return GraphSnapshot.build(self._nodes.values(), self._edges.values())


def _stamp(record: Any, existing: Any) -> Any:
    now = int(time())
    if existing is not None:
        return replace(record, created_at=existing.created_at or now, updated_at=now)
    return replace(
        record,
        created_at=record.created_at or now,
        updated_at=record.updated_at or now,
    )


class RecordStore:
    """Owns the node/edge collections and their persistence.

    Args:
        persistence: The storage collaborator.
        timeout: Seconds allowed per persistence call.  Defaults to
            ``settings.persistence_timeout``; ``0`` disables the worker
            thread and calls the collaborator inline.
        load: Read the collections from *persistence* immediately.
    """

    def __init__(
        self,
        persistence: "Persistence",
        timeout: Optional[float] = None,
        load: bool = True,
    ) -> None:
        self.persistence = persistence
        self.timeout = settings.persistence_timeout if timeout is None else timeout
        self._snapshot = GraphSnapshot()
        self._lock = threading.RLock()
        self._active: Optional[Transaction] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.timeout:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nexus-persist")
        if load:
            self.reload()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def reload(self) -> GraphSnapshot:
        """Re-read both collections from the collaborator."""
        with self._lock:
            nodes = self._call("get_nodes")
            edges = self._call("get_edges")
            self._snapshot = GraphSnapshot.build(nodes, edges)
            logger.debug(
                "Loaded %d nodes and %d edges", len(self._snapshot.nodes), len(self._snapshot.edges)
            )
            return self._snapshot

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def snapshot(self) -> GraphSnapshot:
        """Return the current immutable snapshot (safe from any thread)."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Serialise a mutation and publish its result atomically.

        A transaction opened while another is active on the same thread joins
        the outer one.  If the block raises after some writes reached the
        collaborator, the store reloads from it so memory matches what was
        actually persisted, then re-raises.
        """
        with self._lock:
            if self._active is not None:
                yield self._active
                return

            txn = Transaction(self, self._snapshot)
            self._active = txn
            try:
                yield txn
            except BaseException:
                if txn.dirty:
                    logger.warning("Transaction failed after partial writes; resyncing store")
                    self._resync()
                raise
            else:
                if txn.dirty:
                    self._snapshot = txn.to_snapshot()
            finally:
                self._active = None

    def _resync(self) -> None:
        try:
            self.reload()
        except PersistenceError:
            logger.exception("Store resync failed; in-memory state may be stale")

    def _call(self, method: str, *args: Any) -> Any:
        fn: Callable[..., Any] = getattr(self.persistence, method)
        try:
            if self._executor is None:
                return fn(*args)
            future = self._executor.submit(fn, *args)
            return future.result(timeout=self.timeout)
        except FuturesTimeoutError as exc:
            raise PersistenceError(
                f"Persistence call {method}() timed out after {self.timeout}s",
                cause=exc,
                retryable=True,
            ) from exc
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Persistence call {method}() failed", cause=exc) from exc
