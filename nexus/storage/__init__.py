"""Persistence collaborators.

Public re-exports so callers can write::

    from nexus.storage import InMemoryPersistence, SQLitePersistence
    from nexus.storage import get_connection, init_db
"""

from nexus.storage.base import Persistence
from nexus.storage.connection import get_connection
from nexus.storage.memory import InMemoryPersistence
from nexus.storage.migrations import init_db
from nexus.storage.sqlite import SQLitePersistence

__all__ = [
    "Persistence",
    "InMemoryPersistence",
    "SQLitePersistence",
    "get_connection",
    "init_db",
]
