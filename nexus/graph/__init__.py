"""Graph store and query engine.

Public re-exports so callers can write::

    from nexus.graph import KnowledgeGraph, RecordStore
"""

from nexus.graph.engine import KnowledgeGraph
from nexus.graph.models import CapturedContent, Edge, Node, Preview
from nexus.graph.search import SearchHit, SearchPage
from nexus.graph.statistics import GraphStatistics
from nexus.graph.store import GraphSnapshot, RecordStore
from nexus.graph.traversal import Connection, Traversal

__all__ = [
    "KnowledgeGraph",
    "RecordStore",
    "GraphSnapshot",
    "Node",
    "Edge",
    "Preview",
    "CapturedContent",
    "SearchHit",
    "SearchPage",
    "Connection",
    "Traversal",
    "GraphStatistics",
]
