"""Storage layer — SQLite database access and schema management."""

from newsreel.storage.connection import get_connection
from newsreel.storage.schema import init_db

__all__ = ["get_connection", "init_db"]
