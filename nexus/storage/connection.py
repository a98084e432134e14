"""SQLite connection factory.

Usage::

    from nexus.storage.connection import get_connection

    with get_connection() as conn:
        cursor = conn.execute("SELECT 1")
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from nexus.config import settings


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    Steps performed on every new connection:
    1. Apply the busy timeout from ``settings.persistence_timeout`` so a
       locked database surfaces an error instead of hanging.
    2. Switch to WAL journal mode for concurrent readers.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.

    Returns:
        A configured :class:`sqlite3.Connection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path or settings.db_path

    # Create parent directory if needed (no-op for `:memory:`)
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    # The record store calls in from a worker thread (see RecordStore), hence
    # check_same_thread=False.
    conn = sqlite3.connect(
        str(path),
        timeout=settings.persistence_timeout,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA journal_mode = WAL")

    return conn
