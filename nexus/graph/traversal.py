"""Breadth-first neighbourhood traversal.

``connected_nodes`` expands outward from a seed node one level at a time,
never revisiting a node, and stops the moment the result cap is reached,
even part-way through a level.  ``incident_edges`` is the edge-scan
primitive shared with node deletion (cascade).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional, Sequence

from nexus.errors import ValidationError
from nexus.graph.models import Edge, Node
from nexus.graph.schemas import TraversalOptions, parse
from nexus.graph.store import GraphSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    node: Node
    edge: Optional[Edge]
    depth: int
    direction: Optional[str]


@dataclass
class Traversal:
    """Ordered traversal result.

    ``degraded`` is set when the traversal hit an internal fault and returned
    nothing; an empty, non-degraded result means the node has no neighbours.
    """

    entries: list[Connection] = field(default_factory=list)
    degraded: bool = False

    def __iter__(self) -> Iterator[Connection]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Connection:
        return self.entries[index]

    @property
    def nodes(self) -> list[Node]:
        return [c.node for c in self.entries]


def incident_edges(
    edges: Iterable[Edge],
    node_id: str,
    edge_types: Optional[Sequence[str]] = None,
    direction: str = "both",
) -> list[Edge]:
    """Return the edges touching *node_id*, filtered by type and direction.

    ``direction`` is relative to *node_id*: ``"out"`` keeps edges it is the
    source of, ``"in"`` edges it is the target of.  A bidirectional edge
    passes either filter.
    """
    matched = []
    for edge in edges:
        if edge_types is not None and edge.type not in edge_types:
            continue
        if direction == "out":
            ok = edge.source == node_id or (edge.bidirectional and edge.target == node_id)
        elif direction == "in":
            ok = edge.target == node_id or (edge.bidirectional and edge.source == node_id)
        else:
            ok = edge.touches(node_id)
        if ok:
            matched.append(edge)
    return matched


def _expand(snapshot: GraphSnapshot, node_id: str, opts: TraversalOptions) -> list[Connection]:
    results: list[Connection] = []
    visited = {node_id}

    if opts.include_self:
        seed = snapshot.node_index.get(node_id)
        if seed is not None:
            results.append(Connection(node=seed, edge=None, depth=0, direction=None))
            if len(results) >= opts.limit:
                return results

    frontier = [node_id]
    for depth in range(1, opts.depth + 1):
        if not frontier:
            break
        next_frontier = []
        for current in frontier:
            for edge in incident_edges(snapshot.edges, current, opts.edge_types, opts.direction):
                neighbour = edge.target if edge.source == current else edge.source
                if neighbour in visited:
                    continue
                visited.add(neighbour)

                node = snapshot.node_index.get(neighbour)
                if node is None:
                    continue
                results.append(
                    Connection(
                        node=node,
                        edge=edge,
                        depth=depth,
                        direction="out" if edge.source == current else "in",
                    )
                )
                next_frontier.append(neighbour)

                if len(results) >= opts.limit:
                    return results
        frontier = next_frontier

    return results


def connected_nodes(
    snapshot: GraphSnapshot,
    node_id: str,
    options: Any = None,
    **overrides: Any,
) -> Traversal:
    """Return the nodes reachable from *node_id* within ``options.depth`` hops.

    Args:
        snapshot: A :class:`~nexus.graph.store.GraphSnapshot`.
        node_id: The seed node.
        options: :class:`~nexus.graph.schemas.TraversalOptions` or a mapping.
        **overrides: Individual option fields, e.g. ``depth=2``.

    Raises:
        ValidationError: If *node_id* is blank or the options are invalid.
    """
    if not node_id:
        raise ValidationError("Node ID is required")
    opts = parse(TraversalOptions, options, **overrides)

    try:
        return Traversal(_expand(snapshot, node_id, opts))
    except Exception:
        logger.exception("Traversal from %s failed; returning degraded result", node_id)
        return Traversal(degraded=True)
