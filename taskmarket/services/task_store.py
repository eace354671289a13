"""
Task, payment and tool-run persistence.

Responsibility: all SQL touching tasks, payments and tool_runs. Rows come back
as plain dicts (snake_case columns); schemas shape them for the API.
"""

import json
import logging
from typing import Any

from taskmarket.core.config import RUNNABLE_STATUSES
from taskmarket.core.db import connect, new_id, now_iso, row_to_dict
from taskmarket.core.errors import NotFoundError

logger = logging.getLogger(__name__)

_TASK_FIELDS = frozenset({
    "created_by_id", "assigned_agent_id", "type", "title", "description", "source_url",
    "input_text", "attachment_id", "payout_amount", "payout_currency", "status",
    "result_text", "result_drive_file_id", "save_to_drive",
})
_PAYMENT_FIELDS = frozenset({
    "task_id", "payer_user_id", "amount", "currency", "network", "mint", "status",
    "tx_hash", "settlement_sig", "challenge_id", "payment_request_url", "callback_url",
    "payer_wallet_address", "payee_wallet_address", "settled_at",
})


def _task_row(row) -> dict[str, Any] | None:
    task = row_to_dict(row)
    if task is not None:
        task["save_to_drive"] = bool(task.get("save_to_drive"))
    return task


# --- Tasks ---

def create_task(fields: dict[str, Any], initial_payment: dict[str, Any] | None = None) -> dict[str, Any]:
    """Insert a task (and optionally its first payment row) in one transaction."""
    unknown = set(fields) - _TASK_FIELDS
    if unknown:
        raise ValueError(f"Unknown task fields: {sorted(unknown)}")
    now = now_iso()
    task = {"id": new_id(), "status": "POSTED", "payout_currency": "SOL", "save_to_drive": False}
    task.update(fields)
    task["created_at"] = now
    task["updated_at"] = now
    columns = list(task)
    values = [int(v) if k == "save_to_drive" else v for k, v in task.items()]
    with connect() as conn:
        conn.execute(
            f"INSERT INTO tasks ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            values,
        )
        if initial_payment is not None:
            _insert_payment(conn, {"task_id": task["id"], **initial_payment})
    logger.info("[task_store] created task id=%s type=%s", task["id"], task.get("type"))
    return get_task(task["id"])


def get_task(task_id: str) -> dict[str, Any] | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    return _task_row(row)


def get_task_detail(task_id: str) -> dict[str, Any] | None:
    """Task with payments, tool runs, assigned agent and attachment document."""
    task = get_task(task_id)
    if task is None:
        return None
    task["payments"] = list_payments(task_id)
    task["tool_runs"] = list_tool_runs(task_id)
    with connect() as conn:
        agent = None
        if task.get("assigned_agent_id"):
            agent = conn.execute("SELECT * FROM agents WHERE id = ?", (task["assigned_agent_id"],)).fetchone()
        attachment = None
        if task.get("attachment_id"):
            attachment = conn.execute("SELECT * FROM documents WHERE id = ?", (task["attachment_id"],)).fetchone()
    task["assigned_agent"] = row_to_dict(agent)
    task["attachment"] = row_to_dict(attachment)
    return task


def list_tasks_for_user(user_id: str) -> list[dict[str, Any]]:
    """Caller's tasks, newest first, each with its payments."""
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE created_by_id = ? ORDER BY created_at DESC", (user_id,)
        ).fetchall()
    tasks = [_task_row(r) for r in rows]
    for t in tasks:
        t["payments"] = list_payments(t["id"])
    return tasks


def list_market() -> list[dict[str, Any]]:
    """Open (POSTED) tasks, newest first."""
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM tasks WHERE status = 'POSTED' ORDER BY created_at DESC"
        ).fetchall()
    return [_task_row(r) for r in rows]


def list_runnable(limit: int) -> list[dict[str, Any]]:
    """Oldest-updated tasks that are ready for the agent."""
    placeholders = ", ".join("?" for _ in RUNNABLE_STATUSES)
    with connect() as conn:
        rows = conn.execute(
            f"SELECT * FROM tasks WHERE status IN ({placeholders}) ORDER BY updated_at ASC LIMIT ?",
            (*RUNNABLE_STATUSES, limit),
        ).fetchall()
    return [_task_row(r) for r in rows]


def update_task(task_id: str, **fields: Any) -> dict[str, Any]:
    """Set the given columns (None values are skipped). Raises NotFoundError."""
    updates = {k: v for k, v in fields.items() if v is not None}
    unknown = set(updates) - _TASK_FIELDS
    if unknown:
        raise ValueError(f"Unknown task fields: {sorted(unknown)}")
    if "save_to_drive" in updates:
        updates["save_to_drive"] = int(bool(updates["save_to_drive"]))
    updates["updated_at"] = now_iso()
    assignments = ", ".join(f"{k} = ?" for k in updates)
    with connect() as conn:
        cur = conn.execute(f"UPDATE tasks SET {assignments} WHERE id = ?", (*updates.values(), task_id))
        if cur.rowcount == 0:
            raise NotFoundError(f"Task not found: {task_id}")
    logger.info("[task_store] updated task id=%s fields=%s", task_id, sorted(k for k in updates if k != "updated_at"))
    return get_task(task_id)


def clear_result(task_id: str, status: str) -> dict[str, Any]:
    """Set status and null the result (update_task skips None values)."""
    with connect() as conn:
        cur = conn.execute(
            "UPDATE tasks SET status = ?, result_text = NULL, updated_at = ? WHERE id = ?",
            (status, now_iso(), task_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Task not found: {task_id}")
    return get_task(task_id)


def delete_task(task_id: str) -> None:
    """Delete tool runs and payments, then the task."""
    with connect() as conn:
        conn.execute("DELETE FROM tool_runs WHERE task_id = ?", (task_id,))
        conn.execute("DELETE FROM payments WHERE task_id = ?", (task_id,))
        conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
    logger.info("[task_store] deleted task id=%s", task_id)


# --- Payments ---

def _insert_payment(conn, fields: dict[str, Any]) -> str:
    unknown = set(fields) - _PAYMENT_FIELDS
    if unknown:
        raise ValueError(f"Unknown payment fields: {sorted(unknown)}")
    now = now_iso()
    payment = {"id": new_id(), "status": "PENDING"}
    payment.update(fields)
    payment["created_at"] = now
    payment["updated_at"] = now
    columns = list(payment)
    conn.execute(
        f"INSERT INTO payments ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
        list(payment.values()),
    )
    return payment["id"]


def create_payment(task_id: str, **fields: Any) -> dict[str, Any]:
    with connect() as conn:
        payment_id = _insert_payment(conn, {"task_id": task_id, **fields})
    logger.info("[task_store] created payment id=%s task_id=%s status=%s", payment_id, task_id, fields.get("status", "PENDING"))
    return get_payment(payment_id)


def get_payment(payment_id: str) -> dict[str, Any] | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM payments WHERE id = ?", (payment_id,)).fetchone()
    return row_to_dict(row)


def list_payments(task_id: str) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM payments WHERE task_id = ? ORDER BY created_at ASC", (task_id,)
        ).fetchall()
    return [dict(r) for r in rows]


def update_payment(payment_id: str, **fields: Any) -> dict[str, Any]:
    """Set the given payment columns (None values are skipped). Raises NotFoundError."""
    updates = {k: v for k, v in fields.items() if v is not None}
    unknown = set(updates) - _PAYMENT_FIELDS
    if unknown:
        raise ValueError(f"Unknown payment fields: {sorted(unknown)}")
    updates["updated_at"] = now_iso()
    assignments = ", ".join(f"{k} = ?" for k in updates)
    with connect() as conn:
        cur = conn.execute(f"UPDATE payments SET {assignments} WHERE id = ?", (*updates.values(), payment_id))
        if cur.rowcount == 0:
            raise NotFoundError(f"Payment not found: {payment_id}")
    return get_payment(payment_id)


# --- Tool runs ---

def record_tool_run(task_id: str, tool: str, input: dict[str, Any], output: dict[str, Any], success: bool) -> str:
    run_id = new_id()
    with connect() as conn:
        conn.execute(
            "INSERT INTO tool_runs (id, task_id, tool, input, output, success, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (run_id, task_id, tool, json.dumps(input, default=str), json.dumps(output, default=str), int(success), now_iso()),
        )
    return run_id


def list_tool_runs(task_id: str) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT * FROM tool_runs WHERE task_id = ? ORDER BY created_at ASC", (task_id,)
        ).fetchall()
    runs = []
    for r in rows:
        run = dict(r)
        run["input"] = json.loads(run["input"]) if run.get("input") else None
        run["output"] = json.loads(run["output"]) if run.get("output") else None
        run["success"] = bool(run["success"])
        runs.append(run)
    return runs
