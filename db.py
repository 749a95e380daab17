"""
db.py
SQLite helpers + schema for the record store and the local cache.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from config import Config
from errors import ConstraintViolationError, DuplicateRecordError, StoreUnavailableError

DB_FILE = Config.DB_FILE
CACHE_FILE = Config.CACHE_FILE

# OperationalError messages that mean the store could not be reached
_UNAVAILABLE_MARKERS = ("locked", "busy", "unable to open", "disk i/o", "readonly")


def _is_unavailable(error: sqlite3.OperationalError) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in _UNAVAILABLE_MARKERS)


@contextmanager
def get_conn(path: Path | str | None = None, timeout: float | None = None):
    """
    Yield a connection that commits on success.

    Locked, missing or unreadable databases surface as StoreUnavailableError;
    constraint violations as ConstraintViolationError (DuplicateRecordError
    for UNIQUE ones). Other OperationalErrors (missing tables, bad SQL) are
    re-raised unchanged.
    """
    try:
        conn = sqlite3.connect(
            path or DB_FILE,
            timeout=Config.STORE_TIMEOUT if timeout is None else timeout,
            check_same_thread=False,
        )
    except sqlite3.OperationalError as e:
        raise StoreUnavailableError(f"Cannot open {path or DB_FILE}: {e}") from e

    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except sqlite3.IntegrityError as e:
        conn.rollback()
        if "UNIQUE" in str(e):
            raise DuplicateRecordError(str(e)) from e
        raise ConstraintViolationError(str(e)) from e
    except sqlite3.OperationalError as e:
        conn.rollback()
        if _is_unavailable(e):
            raise StoreUnavailableError(str(e)) from e
        raise
    finally:
        conn.close()


def execute(sql: str, params: tuple = (), path: Path | str | None = None) -> int:
    with get_conn(path) as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = (), path: Path | str | None = None):
    with get_conn(path) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = (), path: Path | str | None = None) -> list[sqlite3.Row]:
    with get_conn(path) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def create_store_tables(path: Path | str | None = None) -> None:
    with get_conn(path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                roll_number TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                email TEXT,
                join_date TEXT NOT NULL,
                reference_date TEXT NOT NULL,
                expiry_date TEXT NOT NULL,
                membership_tier TEXT NOT NULL,
                fee REAL NOT NULL CHECK(fee >= 0),
                paid_amount REAL NOT NULL CHECK(paid_amount >= 0),
                remaining REAL NOT NULL CHECK(remaining >= 0)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attendance (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER NOT NULL,
                date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'present',
                UNIQUE(member_id, date),
                FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                member_id INTEGER,
                roll_number TEXT NOT NULL,
                amount REAL NOT NULL,
                kind TEXT NOT NULL CHECK(kind IN ('registration','payment','renewal')),
                timestamp TEXT NOT NULL
            )
            """
        )


def create_cache_tables(path: Path | str | None = None) -> None:
    with get_conn(path or CACHE_FILE) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS app_settings (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pending_sync (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                roll_number TEXT NOT NULL,
                payload TEXT NOT NULL,
                reason TEXT,
                tag TEXT NOT NULL DEFAULT 'pending_sync',
                captured_at TEXT NOT NULL
            )
            """
        )
