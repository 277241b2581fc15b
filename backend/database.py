"""
Device Factory Management - Database Connection Manager
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): Helpers no longer commit; callers own the transaction so
                      record + VIN + history writes land together
v1.0.0 (2026-02-27): Initial database connection manager with async helpers

Provides centralized async SQLite connection management for the services.
Uses aiosqlite with WAL journal mode and foreign key enforcement.
"""

import os
import aiosqlite
from contextlib import asynccontextmanager

from config import settings


def get_db_path() -> str:
    """Resolve database path, create data directory if needed"""
    db_path = settings.SQLITE_DB_PATH
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    return db_path


@asynccontextmanager
async def get_db():
    """
    Async context manager yielding an aiosqlite connection with WAL + FK.

    Anything not committed by the caller is rolled back on exit.
    """
    db = await aiosqlite.connect(get_db_path())
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA foreign_keys=ON")
    try:
        yield db
    except BaseException:
        await db.rollback()
        raise
    finally:
        await db.close()


async def execute_one(db, sql: str, params=()) -> dict | None:
    """Execute query and return first row as dict, or None"""
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return dict(row) if row else None


async def execute_all(db, sql: str, params=()) -> list[dict]:
    """Execute query and return all rows as list of dicts"""
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [dict(row) for row in rows]


async def execute_scalar(db, sql: str, params=()):
    """Execute query and return the first column of the first row"""
    cursor = await db.execute(sql, params)
    row = await cursor.fetchone()
    return row[0] if row else None


async def execute_insert(db, sql: str, params=()) -> int:
    """Execute INSERT and return lastrowid (caller commits)"""
    cursor = await db.execute(sql, params)
    return cursor.lastrowid


async def execute_update(db, sql: str, params=()) -> int:
    """Execute UPDATE/DELETE and return rowcount (caller commits)"""
    cursor = await db.execute(sql, params)
    return cursor.rowcount
