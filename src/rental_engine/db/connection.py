"""Database connection helpers."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rental_engine.config import DB_BUSY_TIMEOUT_SECONDS


def get_connection(
    database_path: Path | str, timeout: float = DB_BUSY_TIMEOUT_SECONDS
) -> sqlite3.Connection:
    """Create a SQLite connection with foreign keys enabled.

    Connections are not shared between threads: every worker opens its own.
    """
    connection = sqlite3.connect(database_path, timeout=timeout)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON;")
    return connection


@contextmanager
def transaction(
    connection: sqlite3.Connection, *, immediate: bool = False
) -> Iterator[sqlite3.Connection]:
    """Provide a transaction scope for SQLite operations.

    With ``immediate=True`` the write lock is taken up front (``BEGIN
    IMMEDIATE``), so reads made inside the scope cannot be invalidated by
    another writer before commit. A scope opened while a transaction is
    already active joins it and leaves commit/rollback to the outer scope.
    """
    if connection.in_transaction:
        yield connection
        return
    if immediate:
        connection.execute("BEGIN IMMEDIATE")
    try:
        yield connection
    except Exception:
        connection.rollback()
        raise
    else:
        connection.commit()
