"""Collection-wide statistics.

Everything is computed in one pass over the nodes and one pass over the
edges of a snapshot.  Statistics are advisory: a fault produces an all-zero
result flagged ``degraded`` rather than an exception.
"""

from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import time
from typing import Any

from nexus.graph.store import GraphSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ConnectionStats:
    min: int = 0
    max: int = 0
    avg: float = 0.0
    isolated: int = 0


@dataclass
class GraphStatistics:
    node_count: int = 0
    edge_count: int = 0
    categories_distribution: dict[str, int] = field(default_factory=dict)
    source_distribution: dict[str, int] = field(default_factory=dict)
    time_distribution: dict[str, int] = field(default_factory=dict)
    edge_type_distribution: dict[str, int] = field(default_factory=dict)
    connection_stats: ConnectionStats = field(default_factory=ConnectionStats)
    last_updated: int = field(default_factory=lambda: int(time()))
    degraded: bool = False

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


UNKNOWN_BUCKET = "unknown"


def month_bucket(timestamp: int) -> str:
    """``"YYYY-MM"`` (UTC) for an epoch-seconds timestamp.

    Values outside the platform's datetime range (for instance epoch
    milliseconds) fall into ``"unknown"``.
    """
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m")
    except (ValueError, OverflowError, OSError):
        return UNKNOWN_BUCKET


def _aggregate(snapshot: GraphSnapshot) -> GraphStatistics:
    categories: Counter[str] = Counter()
    sources: Counter[str] = Counter()
    months: Counter[str] = Counter()
    for node in snapshot.nodes:
        categories.update(node.categories)
        sources[node.source or "unknown"] += 1
        months[month_bucket(node.timestamp or 0)] += 1

    edge_types: Counter[str] = Counter()
    degree: Counter[str] = Counter()
    for edge in snapshot.edges:
        edge_types[edge.type or "unknown"] += 1
        # A self-loop counts twice for its node.
        degree[edge.source] += 1
        degree[edge.target] += 1

    stats = ConnectionStats()
    if degree:
        counts = list(degree.values())
        stats.min = min(counts)
        stats.max = max(counts)
        stats.avg = sum(counts) / len(counts)
    stats.isolated = sum(1 for node in snapshot.nodes if node.id not in degree)

    return GraphStatistics(
        node_count=len(snapshot.nodes),
        edge_count=len(snapshot.edges),
        categories_distribution=dict(categories),
        source_distribution=dict(sources),
        time_distribution=dict(months),
        edge_type_distribution=dict(edge_types),
        connection_stats=stats,
    )


def compute_statistics(snapshot: GraphSnapshot) -> GraphStatistics:
    try:
        return _aggregate(snapshot)
    except Exception:
        logger.exception("Statistics aggregation failed; returning degraded result")
        return GraphStatistics(degraded=True)
