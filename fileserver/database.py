"""Database connection management for the SQLite catalog."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from fileserver.migrator import apply_migrations


def init_database(db_path: str) -> int:
    """
    Create the database file if needed and bring its schema up to date.

    Returns:
        Number of migrations applied by this call
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection(db_path) as conn:
        return apply_migrations(conn)


@contextmanager
def get_db_connection(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

