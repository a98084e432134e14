"""Domain-specific helpers for insight nodes.

An insight is a node with ``source="insight"`` that summarises other nodes
and is linked to each of them by a bidirectional ``insight`` edge.
"""

from __future__ import annotations

import logging
from time import time
from typing import Any, Optional

from nexus.errors import ValidationError
from nexus.graph.edges import add_edge
from nexus.graph.models import Node
from nexus.graph.nodes import NodeCache, add_node, get_node
from nexus.graph.schemas import InsightCreate, InsightQuery, parse
from nexus.graph.search import search_nodes
from nexus.graph.store import RecordStore

logger = logging.getLogger(__name__)

INSIGHT_SOURCE = "insight"
INSIGHT_EDGE_TYPE = "insight"


def get_nodes_for_insight(
    store: RecordStore,
    query: Any = None,
    cache: Optional[NodeCache] = None,
    **overrides: Any,
) -> list[Node]:
    """Collect the nodes an insight should be generated from.

    Explicit ``node_ids`` are resolved one by one (missing ids are skipped).
    Otherwise ``categories`` and ``tags`` become a search query over
    categories, tags, title and content, newest first, optionally limited to
    the last ``time_range`` seconds.

    Returns ``[]`` on an internal fault.
    """
    opts = parse(InsightQuery, query, **overrides)

    try:
        if opts.node_ids:
            found = (get_node(store, node_id, cache) for node_id in opts.node_ids)
            return [node for node in found if node is not None]

        text = " ".join([*opts.categories, *opts.tags])
        page = search_nodes(
            store.snapshot(),
            text,
            limit=opts.limit,
            sort_by="timestamp",
            order="desc",
            search_in=["categories", "tags", "title", "content"],
        )
        nodes = page.nodes

        if opts.time_range is not None:
            now = int(time())
            start = now - opts.time_range
            nodes = [n for n in nodes if start <= n.timestamp <= now]
        return nodes
    except Exception:
        logger.exception("Failed to collect nodes for insight")
        return []


def add_insight_node(
    store: RecordStore,
    data: Any,
    cache: Optional[NodeCache] = None,
) -> str:
    """Create an insight node and link it to ``related_nodes``.

    Raises:
        ValidationError: If ``content`` is missing or a related node does not
            exist.  The insight node itself is kept in the latter case.
    """
    if data is None:
        raise ValidationError("Insight data is required")
    insight = parse(InsightCreate, data)

    metadata = {
        **insight.metadata,
        "insight_type": insight.insight_type,
        "generated_from": list(insight.generated_from),
    }
    insight_id = add_node(
        store,
        {
            "title": insight.title or "Generated Insight",
            "content": insight.content,
            "source": INSIGHT_SOURCE,
            "categories": insight.categories if insight.categories is not None else ["insight"],
            "tags": insight.tags,
            "metadata": metadata,
        },
        cache,
    )

    for related_id in insight.related_nodes:
        add_edge(
            store,
            {
                "source": insight_id,
                "target": related_id,
                "type": INSIGHT_EDGE_TYPE,
                "label": "Generated from",
                "bidirectional": True,
            },
            cache,
        )

    logger.debug("Added insight %s linked to %d nodes", insight_id, len(insight.related_nodes))
    return insight_id
