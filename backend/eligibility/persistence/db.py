"""SQLite connection + schema initialisation."""
from __future__ import annotations
import logging
import os
import sqlite3

from eligibility.core import config

logger = logging.getLogger(__name__)


def get_connection() -> sqlite3.Connection:
    # Path read at call time so tests can point config at a temporary file
    conn = sqlite3.connect(config.DATABASE_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db() -> None:
    """Run all migration SQL files against the database."""
    directory = os.path.dirname(config.DATABASE_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)
    migration_file = os.path.join(config.MIGRATIONS_DIR, "001_init.sql")
    with open(migration_file, "r", encoding="utf-8") as f:
        sql = f.read()
    conn = get_connection()
    conn.executescript(sql)
    conn.commit()
    conn.close()
    logger.info("Database schema ready at %s", config.DATABASE_PATH)
