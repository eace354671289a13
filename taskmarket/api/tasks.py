"""
Task endpoints: CRUD, accept, quick task, market listing.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from taskmarket.agent.instructions import classify_task_type
from taskmarket.api.deps import parse_body, require_user
from taskmarket.core.auth import AuthUser
from taskmarket.core.config import QUICK_TASK_CURRENCY, QUICK_TASK_PAYOUT, SOLANA_NETWORK
from taskmarket.core.errors import NotFoundError
from taskmarket.schemas.task import (
    MarketTaskOut,
    QuickTaskRequest,
    TaskCreateRequest,
    TaskDetailOut,
    TaskOut,
    TaskUpdateRequest,
    dump,
)
from taskmarket.services import task_store
from taskmarket.services.user_store import ensure_agent, get_agent

logger = logging.getLogger(__name__)
router = APIRouter(tags=["tasks"])


@router.get("/api/tasks", summary="List the caller's tasks (newest first)")
def list_tasks(user: AuthUser = Depends(require_user)) -> dict:
    tasks = task_store.list_tasks_for_user(user.id)
    return {"tasks": [dump(TaskOut, t) for t in tasks]}


@router.post("/api/tasks", summary="Post a task with its initial payment row")
def create_task(payload: Any = Body(None), user: AuthUser = Depends(require_user)) -> dict:
    body = parse_body(TaskCreateRequest, payload)
    task = task_store.create_task(
        {
            "type": body.type,
            "title": body.title,
            "description": body.description,
            "source_url": str(body.source_url) if body.source_url else None,
            "input_text": body.input_text,
            "attachment_id": body.attachment_id,
            "payout_amount": body.payout_amount,
            "payout_currency": body.payout_currency,
            "created_by_id": user.id,
            "save_to_drive": bool(body.save_to_drive),
        },
        initial_payment={
            "payer_user_id": user.id,
            "amount": body.payout_amount,
            "currency": body.payout_currency,
            "network": "devnet",
            "mint": body.payout_currency,
        },
    )
    task["payments"] = task_store.list_payments(task["id"])
    return {"task": dump(TaskOut, task)}


@router.post("/api/tasks/quick", summary="Create a task from a free-form prompt")
def create_quick_task(payload: Any = Body(None), user: AuthUser = Depends(require_user)) -> dict:
    body = parse_body(QuickTaskRequest, payload, detail="Invalid request body")
    prompt = (body.prompt or "").strip()
    if not prompt and not body.attachment_id:
        raise HTTPException(status_code=400, detail="Provide a prompt or an attachment")

    task_type = classify_task_type(prompt)
    created = task_store.create_task({
        "created_by_id": user.id,
        "type": task_type,
        "title": None,
        "description": prompt or None,
        "input_text": prompt or None,
        "source_url": None,
        "attachment_id": body.attachment_id or None,
        "payout_amount": QUICK_TASK_PAYOUT,
        "payout_currency": QUICK_TASK_CURRENCY,
        "status": "POSTED",
        "save_to_drive": body.save_to_drive,
    })
    if body.deposit_tx_hash and body.deposit_amount_sol:
        try:
            task_store.create_payment(
                created["id"],
                payer_user_id=user.id,
                amount=body.deposit_amount_sol,
                currency="SOL",
                network=SOLANA_NETWORK,
                status="SUCCESS",
                tx_hash=body.deposit_tx_hash,
            )
        except Exception as e:
            logger.error("[api:quick_task] deposit record failed task_id=%s: %s", created["id"], e)
    logger.info("[api:quick_task] created task_id=%s type=%s", created["id"], task_type)
    return {
        "task": {"id": created["id"], "type": created["type"], "status": created["status"]},
        "inferred": {"type": task_type},
    }


@router.get("/api/tasks/{task_id}", summary="Task with payments, tool runs, agent and attachment")
def get_task(task_id: str) -> dict:
    task = task_store.get_task_detail(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Not found")
    return {"task": dump(TaskDetailOut, task)}


@router.patch("/api/tasks/{task_id}", summary="Update status, assignment or result fields")
def update_task(task_id: str, payload: Any = Body(None), user: AuthUser = Depends(require_user)) -> dict:
    body = parse_body(TaskUpdateRequest, payload)
    try:
        updated = task_store.update_task(
            task_id,
            status=body.status,
            assigned_agent_id=body.assigned_agent_id,
            title=body.title,
            description=body.description,
            result_text=body.result_text,
            result_drive_file_id=body.result_drive_file_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail="Invalid request") from e
    return {"task": dump(TaskOut, updated, exclude_none_keys=("payments",))}


@router.delete("/api/tasks/{task_id}", summary="Delete an owned task with its payments and tool runs")
def delete_task(task_id: str, user: AuthUser = Depends(require_user)) -> dict:
    task = task_store.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Not found")
    if task.get("created_by_id") != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        task_store.delete_task(task_id)
    except Exception as e:
        logger.error("[api:delete_task] error task_id=%s: %s", task_id, e)
        raise HTTPException(status_code=400, detail="Failed to delete task") from e
    return {"ok": True}


@router.post("/api/tasks/{task_id}/accept", summary="Assign a posted task to the caller's agent")
def accept_task(task_id: str, user: AuthUser = Depends(require_user)) -> dict:
    task = task_store.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Not found")
    if task["status"] != "POSTED":
        raise HTTPException(status_code=400, detail="Task not available")
    agent = ensure_agent(user.id)
    updated = task_store.update_task(task_id, assigned_agent_id=agent["id"], status="ASSIGNED")
    updated["assigned_agent"] = get_agent(agent["id"])
    logger.info("[api:accept_task] task_id=%s agent_id=%s", task_id, agent["id"])
    return {"task": dump(TaskDetailOut, updated, exclude_none_keys=("payments",))}


@router.get("/api/market", tags=["market"], summary="Open tasks, newest first")
def market() -> dict:
    return {"tasks": [dump(MarketTaskOut, t) for t in task_store.list_market()]}
