"""
Database schema initialization.

Reads schema.sql next to this module and applies it. Every statement is
`IF NOT EXISTS`, so running it on an existing database is a no-op.
"""

import logging
from pathlib import Path

from .connection import Database

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def initialize_schema(db: Database) -> None:
    """
    Create tables and indexes (idempotent).

    Args:
        db: Open Database handle

    Raises:
        FileNotFoundError: If schema.sql is missing from the install
        sqlite3.Error: If the script fails
    """
    if not SCHEMA_PATH.exists():
        logger.error(f"Schema file not found: {SCHEMA_PATH}")
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    db.executescript(schema_sql)
    logger.info("Database schema initialized")


def table_names(db: Database) -> list:
    """List user tables (schema sanity checks)."""
    rows = db.fetchall(
        "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
    )
    return [row["name"] for row in rows]
