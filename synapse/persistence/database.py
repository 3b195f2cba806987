"""
SQLite database connection management.

Provides async database initialization and a connection factory.
Uses aiosqlite for async SQLite access.

Schema is defined in schema.sql (idempotent, no migrations).
"""

from pathlib import Path
from typing import Optional

import aiosqlite
import structlog

from synapse.core.config import settings
from synapse.core.exceptions import PersistenceError

log = structlog.get_logger(__name__)

# Path to schema file
SCHEMA_FILE = Path(__file__).parent / "schema.sql"


async def init_database(db_path: Optional[Path] = None) -> None:
    """
    Initialize database from schema.

    Args:
        db_path: Optional path to database file. Uses settings.database_path if not provided.

    Creates the database file if it doesn't exist and applies the schema.
    Existing databases are left intact (CREATE TABLE IF NOT EXISTS).
    """
    db_path = Path(db_path or settings.database_path)

    # Ensure parent directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    log.info("initializing_database", path=str(db_path))

    if not SCHEMA_FILE.exists():
        log.error("schema_file_not_found", path=str(SCHEMA_FILE))
        raise PersistenceError(f"Schema file not found: {SCHEMA_FILE}")

    async with aiosqlite.connect(db_path) as db:
        # Enable WAL mode for better concurrent read performance
        await db.execute("PRAGMA journal_mode = WAL")

        await db.executescript(SCHEMA_FILE.read_text())
        await db.commit()

    log.info("database_initialized", path=str(db_path))


async def get_db_connection(db_path: Optional[Path] = None) -> aiosqlite.Connection:
    """
    Get a single database connection.

    Caller is responsible for closing the connection:

        db = await get_db_connection()
        try:
            # use db
        finally:
            await db.close()
    """
    db = await aiosqlite.connect(db_path or settings.database_path)
    db.row_factory = aiosqlite.Row
    return db


async def check_database_health(db_path: Optional[Path] = None) -> dict:
    """
    Check database health.

    Returns:
        Dict with health status and basic metrics.
    """
    path = db_path or settings.database_path
    try:
        async with aiosqlite.connect(path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM concept_nodes")
            row = await cursor.fetchone()
            node_count = row[0] if row else 0

            cursor = await db.execute("PRAGMA integrity_check")
            integrity = await cursor.fetchone()

            return {
                "status": "healthy",
                "concept_count": node_count,
                "integrity": integrity[0] if integrity else "unknown",
                "path": str(path),
            }
    except aiosqlite.Error as e:
        log.error("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
