"""
SQLite connection handle.

One `Database` owns exactly one connection. It is created at startup and
passed explicitly to every repository; there is no module-level connection.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from ..core.db import MEMORY, connect

logger = logging.getLogger(__name__)


class Database:
    """
    Single-connection SQLite handle.

    Statements are serialized through a lock so the handle can be shared by
    threads; each call is one statement committed on its own (no
    cross-record transactions).

    Attributes:
        path: Database file path (or ":memory:")
        conn: sqlite3 connection (None until open() is called)
    """

    def __init__(self, path: Union[str, Path] = MEMORY):
        """
        Args:
            path: Database file path. Parent directories are created on open().
        """
        self.path = path
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def open(self) -> "Database":
        """
        Open the connection.

        Returns:
            self, so `Database(path).open()` can be chained
        """
        if self.conn is not None:
            return self
        if str(self.path) != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = connect(self.path, row_factory=True, check_same_thread=False)
        logger.info("Database opened: %s", self.path)
        return self

    def close(self) -> None:
        """Close the connection (idempotent)."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logger.info("Database closed")

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require(self) -> sqlite3.Connection:
        if self.conn is None:
            raise RuntimeError("Database not opened. Call open() first.")
        return self.conn

    def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """
        Execute INSERT/UPDATE/DELETE and commit.

        Returns:
            Number of affected rows
        """
        with self._lock:
            conn = self._require()
            with conn:
                cursor = conn.execute(query, params)
            return cursor.rowcount

    def executescript(self, script: str) -> None:
        """Run a multi-statement SQL script (schema setup)."""
        with self._lock:
            conn = self._require()
            conn.executescript(script)
            conn.commit()

    def fetchone(self, query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        """Execute SELECT and return the first row or None."""
        with self._lock:
            return self._require().execute(query, params).fetchone()

    def fetchall(self, query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Execute SELECT and return all rows."""
        with self._lock:
            return self._require().execute(query, params).fetchall()
