"""Database initialisation.

``init_db(conn)`` is idempotent and safe to call on an existing database.
"""

from __future__ import annotations

import sqlite3


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS nodes (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    content     TEXT NOT NULL DEFAULT '{}',
    url         TEXT,
    timestamp   INTEGER NOT NULL,
    source      TEXT NOT NULL,
    metadata    TEXT NOT NULL DEFAULT '{}',
    categories  TEXT NOT NULL DEFAULT '[]',
    tags        TEXT NOT NULL DEFAULT '[]',
    preview     TEXT,
    created_at  INTEGER,
    updated_at  INTEGER
);

CREATE TABLE IF NOT EXISTS edges (
    id            TEXT PRIMARY KEY,
    source_id     TEXT NOT NULL,
    target_id     TEXT NOT NULL,
    relation_type TEXT NOT NULL,
    label         TEXT NOT NULL DEFAULT '',
    weight        REAL NOT NULL DEFAULT 1.0,
    bidirectional INTEGER NOT NULL DEFAULT 0,
    metadata      TEXT NOT NULL DEFAULT '{}',
    timestamp     INTEGER NOT NULL,
    created_at    INTEGER,
    updated_at    INTEGER
);

CREATE INDEX IF NOT EXISTS idx_edges_source ON edges(source_id);
CREATE INDEX IF NOT EXISTS idx_edges_target ON edges(target_id);
"""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(conn: sqlite3.Connection) -> None:
    """Create the ``nodes`` and ``edges`` tables and their indexes.

    This function is **idempotent**: every DDL statement uses ``IF NOT EXISTS``
    so calling it multiple times on the same database is safe.

    Edges carry no foreign keys; cascading deletes are done by the graph
    layer.
    """
    conn.executescript(SCHEMA_SQL)
