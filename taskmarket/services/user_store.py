"""
Users, per-user settings (Discord channel) and agent rows.
"""

import logging
import sqlite3
from typing import Any

from taskmarket.core.db import connect, new_id, now_iso, row_to_dict

logger = logging.getLogger(__name__)


class EmailInUseError(Exception):
    """Raised when registering an email that already has an account."""


def get_user_by_email(email: str) -> dict[str, Any] | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
    return row_to_dict(row)


def create_user(email: str, password_hash: str, name: str | None = None) -> dict[str, Any]:
    user = {
        "id": new_id(),
        "email": email,
        "name": name,
        "password_hash": password_hash,
        "role": "USER",
        "created_at": now_iso(),
    }
    try:
        with connect() as conn:
            conn.execute(
                "INSERT INTO users (id, email, name, password_hash, role, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (user["id"], email, name, password_hash, user["role"], user["created_at"]),
            )
    except sqlite3.IntegrityError as e:
        raise EmailInUseError(email) from e
    logger.info("[user_store] created user id=%s", user["id"])
    return user


def get_discord_channel(user_id: str) -> str:
    with connect() as conn:
        row = conn.execute(
            "SELECT discord_channel_id FROM user_settings WHERE user_id = ?", (user_id,)
        ).fetchone()
    return (row["discord_channel_id"] or "") if row else ""


def set_discord_channel(user_id: str, channel_id: str) -> str:
    with connect() as conn:
        conn.execute(
            """
            INSERT INTO user_settings (user_id, discord_channel_id, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET discord_channel_id = excluded.discord_channel_id,
                                               updated_at = excluded.updated_at
            """,
            (user_id, channel_id, now_iso()),
        )
    logger.info("[user_store] discord channel set user_id=%s", user_id)
    return channel_id


def get_agent(agent_id: str) -> dict[str, Any] | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM agents WHERE id = ?", (agent_id,)).fetchone()
    return row_to_dict(row)


def ensure_agent(user_id: str) -> dict[str, Any]:
    """Return the user's agent, creating an ACTIVE one on first use."""
    with connect() as conn:
        row = conn.execute("SELECT * FROM agents WHERE user_id = ?", (user_id,)).fetchone()
        if row is not None:
            return dict(row)
        agent = {"id": new_id(), "user_id": user_id, "status": "ACTIVE", "created_at": now_iso()}
        conn.execute(
            "INSERT INTO agents (id, user_id, status, created_at) VALUES (?, ?, ?, ?)",
            (agent["id"], user_id, agent["status"], agent["created_at"]),
        )
    logger.info("[user_store] created agent id=%s for user_id=%s", agent["id"], user_id)
    return agent
