"""
Lightweight SQLite store for users, tasks, payments and tool runs.

Creates data/taskmarket.db (relative to project root unless DATABASE_PATH is absolute).
Tables: users, user_settings, agents, documents, tasks, payments, tool_runs.
"""

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from taskmarket.core.config import DATABASE_PATH

logger = logging.getLogger(__name__)

# Project root
_ROOT = Path(__file__).resolve().parent.parent.parent
_DB_PATH = Path(DATABASE_PATH) if Path(DATABASE_PATH).is_absolute() else _ROOT / DATABASE_PATH

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        password_hash TEXT,
        role TEXT NOT NULL DEFAULT 'USER',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id TEXT PRIMARY KEY,
        discord_channel_id TEXT,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS agents (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        type TEXT NOT NULL,
        storage TEXT NOT NULL,
        name TEXT,
        url TEXT,
        drive_file_id TEXT,
        extracted_text TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        created_by_id TEXT,
        assigned_agent_id TEXT,
        type TEXT NOT NULL,
        title TEXT,
        description TEXT,
        source_url TEXT,
        input_text TEXT,
        attachment_id TEXT,
        payout_amount TEXT NOT NULL,
        payout_currency TEXT NOT NULL DEFAULT 'SOL',
        status TEXT NOT NULL DEFAULT 'POSTED',
        result_text TEXT,
        result_drive_file_id TEXT,
        save_to_drive INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id TEXT PRIMARY KEY,
        task_id TEXT NOT NULL,
        payer_user_id TEXT,
        amount TEXT NOT NULL,
        currency TEXT NOT NULL,
        network TEXT NOT NULL,
        mint TEXT,
        status TEXT NOT NULL DEFAULT 'PENDING',
        tx_hash TEXT,
        settlement_sig TEXT,
        challenge_id TEXT,
        payment_request_url TEXT,
        callback_url TEXT,
        payer_wallet_address TEXT,
        payee_wallet_address TEXT,
        settled_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tool_runs (
        id TEXT PRIMARY KEY,
        task_id TEXT NOT NULL,
        tool TEXT NOT NULL,
        input TEXT,
        output TEXT,
        success INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
)


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_conn() -> sqlite3.Connection:
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(_DB_PATH))
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create all tables if they do not exist."""
    conn = _get_conn()
    try:
        for stmt in _SCHEMA:
            conn.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("[db] ready path=%s", _DB_PATH)


@contextmanager
def connect() -> Iterator[sqlite3.Connection]:
    """Yield a connection; commit on success, roll back on error, always close."""
    init_db_once()
    conn = _get_conn()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


_initialized: set[str] = set()


def init_db_once() -> None:
    """init_db() at most once per database file."""
    key = str(_DB_PATH)
    if key in _initialized:
        return
    init_db()
    _initialized.add(key)


def row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    return dict(row) if row is not None else None
