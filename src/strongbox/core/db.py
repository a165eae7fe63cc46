# Core - Central SQLite Connection Helper
#
# Every Strongbox SQLite connection is opened through `connect()` so that:
#
#   - foreign_keys enforcement is on (credentials cascade with their vault)
#   - WAL journal mode is on (safer against corruption on crash)
#   - busy_timeout avoids SQLITE_BUSY under contention

import sqlite3
from pathlib import Path
from typing import Union

MEMORY = ":memory:"


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
    check_same_thread: bool = True,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and safe PRAGMAs.

    Args:
        db_path: Path to the database file, or ":memory:".
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        check_same_thread: Passed to sqlite3.connect().

    Returns:
        sqlite3.Connection with foreign_keys, busy_timeout and (on files) WAL.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")
    if str(db_path) != MEMORY:
        conn.execute("PRAGMA journal_mode=WAL")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn
