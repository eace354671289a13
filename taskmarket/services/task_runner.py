"""
Task runner: drive one task through the agent, store the result, notify, pay out.

Order: IN_PROGRESS + notify → instructions → autonomous agent (pipeline as
fallback) → x402 demo → COMPLETED/FAILED + tool run → notify → payout.
Only loading the task and writing its status can fail the run; agent,
notification and payout problems are logged and the flow continues.
"""

import logging
import time
from typing import Any

from taskmarket.agent.graph import run_task_agent, run_task_pipeline, run_x402_demo_once
from taskmarket.agent.instructions import generate_instructions, research_query, task_label
from taskmarket.agent.tools import OPENAI
from taskmarket.core import config
from taskmarket.core.errors import NotFoundError
from taskmarket.payments.solana import explorer_link, transfer_sol, usd_to_sol
from taskmarket.services import task_store
from taskmarket.services.documents import attachment_excerpt, save_to_drive
from taskmarket.services.notifier import notify_discord_for_user

logger = logging.getLogger(__name__)


def _notify(task: dict[str, Any], content: str) -> None:
    if task.get("created_by_id"):
        notify_discord_for_user(task["created_by_id"], content)


def payout_amount_sol() -> float:
    """PAYOUT_SOL, else PAYOUT_USD converted at the current price (floored to MIN_PAYOUT_SOL)."""
    amount = config.PAYOUT_SOL
    if not amount and config.PAYOUT_USD > 0:
        converted = usd_to_sol(config.PAYOUT_USD)
        amount = max(converted, config.MIN_PAYOUT_SOL) if converted else 0.0
    return amount


def pay_out(task: dict[str, Any], label: str) -> str | None:
    """Transfer the payout to the agent wallet and record it. Returns the signature, or None when skipped/failed."""
    try:
        recipient = config.AGENT_PUBLIC_KEY
        amount_sol = payout_amount_sol()
        if not recipient or amount_sol <= 0:
            logger.info("[task_runner:pay_out] skip task_id=%s recipient=%s amount=%s", task["id"], bool(recipient), amount_sol)
            return None
        _notify(task, f'AgenX: Initiating payment of {amount_sol} SOL for "{label}"…')
        logger.info("[task_runner:pay_out] begin task_id=%s amount_sol=%s recipient=%s", task["id"], amount_sol, recipient)
        sig = transfer_sol(recipient, amount_sol)
        logger.info("[task_runner:pay_out] success task_id=%s sig=%s", task["id"], sig)
        task_store.create_payment(
            task["id"],
            payer_user_id=task.get("created_by_id"),
            amount=str(amount_sol),
            currency="SOL",
            network=config.SOLANA_NETWORK,
            status="SUCCESS",
            tx_hash=sig,
        )
        _notify(task, f'AgenX: Payment successful for "{label}". Tx: {sig}\n{explorer_link(sig)}')
        return sig
    except Exception as e:
        logger.error("[task_runner:pay_out] error task_id=%s: %s", task["id"], e)
        return None


def _fulfill(task: dict[str, Any], instructions: str) -> str:
    """Agent first; the deterministic pipeline when the agent produced nothing."""
    content = ""
    try:
        content = run_task_agent(task["id"], instructions).get("final") or ""
        logger.info("[task_runner] autonomous done task_id=%s has_output=%s", task["id"], bool(content))
    except Exception as e:
        logger.error("[task_runner] agent error (non-fatal) task_id=%s: %s", task["id"], e)
    if content:
        return content
    try:
        result = run_task_pipeline(task["id"], instructions, task.get("source_url"), research_query(task))
        content = result.get("final") or ""
        logger.info("[task_runner] pipeline done task_id=%s has_output=%s", task["id"], bool(content))
    except Exception as e:
        logger.error("[task_runner] pipeline error (non-fatal) task_id=%s: %s", task["id"], e)
    return content


def run_task(task_id: str) -> dict[str, Any]:
    """Fulfill one task end to end. Returns the updated task. Raises NotFoundError."""
    task = task_store.get_task(task_id)
    if task is None:
        raise NotFoundError(f"Task not found: {task_id}")
    label = task_label(task)
    start = time.monotonic()
    logger.info("[task_runner] start task_id=%s label=%r", task_id, label)

    task_store.update_task(task_id, status="IN_PROGRESS")
    _notify(task, f'AgenX: "{label}" in progress…')

    attachment_text = attachment_excerpt(task.get("attachment_id"))
    instructions = generate_instructions(task, attachment_text)
    logger.info("[task_runner] autonomous begin task_id=%s has_url=%s", task_id, bool(task.get("source_url")))
    content = _fulfill(task, instructions)

    try:
        run_x402_demo_once(task_id)
    except Exception as e:
        logger.warning("[task_runner] x402 demo failed task_id=%s: %s", task_id, e)

    succeeded = bool(content)
    if succeeded:
        updated = task_store.update_task(task_id, status="COMPLETED", result_text=content)
    else:
        updated = task_store.clear_result(task_id, "FAILED")

    try:
        task_store.record_tool_run(task_id, OPENAI, {"agent": "tool-calling", "hadOutput": succeeded}, {"content": content}, True)
    except Exception as e:
        logger.error("[task_runner] tool run OPENAI log failed task_id=%s: %s", task_id, e)

    if succeeded and task.get("save_to_drive") and task.get("created_by_id"):
        try:
            doc_id = save_to_drive(task["created_by_id"], label or f"Task {task_id}", content)
            updated = task_store.update_task(task_id, result_drive_file_id=doc_id)
        except Exception as e:
            logger.error("[task_runner] save_to_drive failed task_id=%s: %s", task_id, e)

    if task.get("created_by_id"):
        if succeeded:
            _notify(task, f'AgenX: "{label}" completed.')
            pay_out(task, label)
        else:
            _notify(task, f'AgenX: "{label}" failed.')

    logger.info("[task_runner] end task_id=%s status=%s total_ms=%d", task_id, updated["status"], int((time.monotonic() - start) * 1000))
    return updated


def mark_failed(task_id: str) -> None:
    """Best-effort FAILED status after an unhandled runner error."""
    try:
        task_store.update_task(task_id, status="FAILED")
    except Exception as e:
        logger.error("[task_runner] could not mark task failed task_id=%s: %s", task_id, e)
