"""Weighted keyword search over the node collection.

Scoring
-------
The query is lower-cased and split on whitespace.  Each node earns points
per enabled field:

=================  ===========================================  ======
field              what counts                                  weight
=================  ===========================================  ======
title              query terms found in the title               3
content.summary    query terms found in the summary             2
content.text       query terms found in the text                1
content.entities   entities whose name contains any term        1.5
categories         categories containing any term               2
tags               tags containing any term                     2.5
url                query terms found in the url                 1
=================  ===========================================  ======

Matching is plain substring containment.  Nodes scoring 0 are dropped; the
rest are ordered by score with ties left in collection order.  A blank
query returns every node, newest ``timestamp`` first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from nexus.errors import ValidationError
from nexus.graph.models import Node, entity_names
from nexus.graph.schemas import SearchOptions, parse
from nexus.graph.store import GraphSnapshot

logger = logging.getLogger(__name__)

FIELD_WEIGHTS: dict[str, float] = {
    "title": 3.0,
    "summary": 2.0,
    "text": 1.0,
    "entities": 1.5,
    "categories": 2.0,
    "tags": 2.5,
    "url": 1.0,
}


@dataclass(frozen=True)
class SearchHit:
    node: Node
    score: float = 0.0
    match_details: dict[str, float] = field(default_factory=dict)


@dataclass
class SearchPage:
    """One page of search results.

    ``total`` counts every match before pagination.  ``degraded`` is set when
    the search hit an internal fault and the page is empty for that reason.
    """

    total: int
    offset: int
    limit: int
    results: list[SearchHit] = field(default_factory=list)
    degraded: bool = False

    @property
    def nodes(self) -> list[Node]:
        return [hit.node for hit in self.results]


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------

def query_terms(query: Optional[str]) -> list[str]:
    """Lower-case and split *query*; repeated terms count once."""
    if not query:
        return []
    return list(dict.fromkeys(query.lower().split()))


def _count_terms(value: str, terms: list[str]) -> int:
    value = value.lower()
    return sum(1 for term in terms if term in value)


def _count_items(values: Iterable[str], terms: list[str]) -> int:
    return sum(1 for v in values if any(term in v.lower() for term in terms))


def score_node(node: Node, terms: list[str], search_in: Iterable[str]) -> SearchHit:
    fields = set(search_in)
    details: dict[str, float] = {}

    def add(name: str, matches: int) -> None:
        if matches:
            details[name] = matches * FIELD_WEIGHTS[name]

    if "title" in fields and node.title:
        add("title", _count_terms(node.title, terms))

    if "content" in fields and node.content:
        summary = node.content.get("summary")
        if isinstance(summary, str):
            add("summary", _count_terms(summary, terms))
        text = node.content.get("text")
        if isinstance(text, str):
            add("text", _count_terms(text, terms))
        add("entities", _count_items(entity_names(node.content), terms))

    if "categories" in fields:
        add("categories", _count_items(node.categories, terms))

    if "tags" in fields:
        add("tags", _count_items(node.tags, terms))

    if "url" in fields and node.url:
        add("url", _count_terms(node.url, terms))

    return SearchHit(node=node, score=sum(details.values()), match_details=details)


# ---------------------------------------------------------------------------
# Sorting helpers
# ---------------------------------------------------------------------------

def get_path(obj: Any, path: str) -> Any:
    """Resolve a dotted path (``"content.summary"``) on a record or dict."""
    current = obj
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing/empty values sort as 0.  Numbers order before strings.
    if not value:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (1, str(value))


def sort_hits(hits: list[SearchHit], sort_by: str, order: str) -> list[SearchHit]:
    return sorted(
        hits,
        key=lambda hit: _sort_key(get_path(hit.node, sort_by)),
        reverse=order == "desc",
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

def _run(nodes: Iterable[Node], query: Optional[str], opts: SearchOptions) -> SearchPage:
    terms = query_terms(query)

    if not terms:
        hits = [
            SearchHit(node=n)
            for n in sorted(nodes, key=lambda n: n.timestamp or 0, reverse=True)
        ]
    else:
        hits = []
        for node in nodes:
            hit = score_node(node, terms, opts.search_in)
            if hit.score > 0:
                hits.append(hit)
        # list.sort is stable, also with reverse=True.
        hits.sort(key=lambda hit: hit.score, reverse=True)

    if opts.sort_by != "relevance":
        hits = sort_hits(hits, opts.sort_by, opts.order)

    return SearchPage(
        total=len(hits),
        offset=opts.offset,
        limit=opts.limit,
        results=hits[opts.offset : opts.offset + opts.limit],
    )


def search_nodes(
    snapshot: GraphSnapshot,
    query: Optional[str],
    options: Any = None,
    **overrides: Any,
) -> SearchPage:
    """Score, rank and paginate the nodes of *snapshot* against *query*.

    Args:
        snapshot: A :class:`~nexus.graph.store.GraphSnapshot`.
        query: Free text.  ``None`` or blank lists everything by timestamp.
        options: :class:`~nexus.graph.schemas.SearchOptions` or a mapping.
        **overrides: Individual option fields, e.g. ``limit=5``.

    Returns:
        A :class:`SearchPage`.  Internal faults yield an empty page with
        ``degraded=True`` instead of raising.

    Raises:
        ValidationError: If *query* is not a string or the options are invalid.
    """
    if query is not None and not isinstance(query, str):
        raise ValidationError(f"Search query must be a string, got {type(query).__name__}")
    opts = parse(SearchOptions, options, **overrides)

    try:
        return _run(snapshot.nodes, query, opts)
    except Exception:
        logger.exception("Search failed for query %r; returning degraded result", query)
        return SearchPage(total=0, offset=opts.offset, limit=opts.limit, degraded=True)
