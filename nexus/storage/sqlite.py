"""SQLite-backed persistence for the ``nodes`` and ``edges`` tables.

Usage::

    from nexus.storage import SQLitePersistence, get_connection, init_db

    conn = get_connection()
    init_db(conn)
    graph = KnowledgeGraph(RecordStore(SQLitePersistence(conn)))

Structured fields (``content``, ``metadata``, ``categories``, ``tags``,
``preview``) are stored as JSON blobs.  Collections are returned in rowid
order, which upserts preserve.
"""

from __future__ import annotations

import json
import sqlite3

from nexus.graph.models import Edge, Node, Preview


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_node(row: sqlite3.Row) -> Node:
    preview = json.loads(row["preview"]) if row["preview"] else None
    return Node(
        id=row["id"],
        title=row["title"],
        content=json.loads(row["content"] or "{}"),
        url=row["url"],
        timestamp=row["timestamp"],
        source=row["source"],
        metadata=json.loads(row["metadata"] or "{}"),
        categories=json.loads(row["categories"] or "[]"),
        tags=json.loads(row["tags"] or "[]"),
        preview=Preview.from_dict(preview) if preview else None,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_edge(row: sqlite3.Row) -> Edge:
    return Edge(
        id=row["id"],
        source=row["source_id"],
        target=row["target_id"],
        type=row["relation_type"],
        label=row["label"],
        weight=row["weight"],
        bidirectional=bool(row["bidirectional"]),
        metadata=json.loads(row["metadata"] or "{}"),
        timestamp=row["timestamp"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class SQLitePersistence:
    """:class:`~nexus.storage.base.Persistence` over an open connection.

    The connection must already have the schema applied
    (:func:`nexus.storage.migrations.init_db`).
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get_nodes(self) -> list[Node]:
        rows = self.conn.execute("SELECT * FROM nodes ORDER BY rowid").fetchall()
        return [_row_to_node(r) for r in rows]

    def get_edges(self) -> list[Edge]:
        rows = self.conn.execute("SELECT * FROM edges ORDER BY rowid").fetchall()
        return [_row_to_edge(r) for r in rows]

    def save_node(self, node: Node) -> None:
        preview = json.dumps(node.preview.to_dict()) if node.preview else None
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO nodes (id, title, content, url, timestamp, source, metadata,
                                   categories, tags, preview, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    content = excluded.content,
                    url = excluded.url,
                    timestamp = excluded.timestamp,
                    source = excluded.source,
                    metadata = excluded.metadata,
                    categories = excluded.categories,
                    tags = excluded.tags,
                    preview = excluded.preview,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at
                """,
                (
                    node.id,
                    node.title,
                    json.dumps(node.content),
                    node.url,
                    node.timestamp,
                    node.source,
                    json.dumps(node.metadata),
                    json.dumps(node.categories),
                    json.dumps(node.tags),
                    preview,
                    node.created_at,
                    node.updated_at,
                ),
            )

    def save_edge(self, edge: Edge) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO edges (id, source_id, target_id, relation_type, label, weight,
                                   bidirectional, metadata, timestamp, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    source_id = excluded.source_id,
                    target_id = excluded.target_id,
                    relation_type = excluded.relation_type,
                    label = excluded.label,
                    weight = excluded.weight,
                    bidirectional = excluded.bidirectional,
                    metadata = excluded.metadata,
                    timestamp = excluded.timestamp,
                    created_at = excluded.created_at,
                    updated_at = excluded.updated_at
                """,
                (
                    edge.id,
                    edge.source,
                    edge.target,
                    edge.type,
                    edge.label,
                    edge.weight,
                    int(edge.bidirectional),
                    json.dumps(edge.metadata),
                    edge.timestamp,
                    edge.created_at,
                    edge.updated_at,
                ),
            )

    def delete_node(self, node_id: str) -> bool:
        """Delete a node row.  Edges are left to the caller."""
        with self.conn:
            cursor = self.conn.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
        return cursor.rowcount > 0

    def delete_edge(self, edge_id: str) -> bool:
        with self.conn:
            cursor = self.conn.execute("DELETE FROM edges WHERE id = ?", (edge_id,))
        return cursor.rowcount > 0
