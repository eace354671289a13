"""Agent endpoints: run one task, scheduler tick."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from taskmarket.api.deps import parse_body
from taskmarket.core import config
from taskmarket.core.errors import NotFoundError
from taskmarket.schemas.agent import AgentRunRequest
from taskmarket.schemas.task import TaskOut, dump
from taskmarket.services.cron import agent_tick, is_authorized
from taskmarket.services.task_runner import mark_failed, run_task

logger = logging.getLogger(__name__)
router = APIRouter(tags=["agent"])


@router.post(
    "/api/agent/run",
    summary="Fulfill a task with the agent",
    description="Runs the agent, stores the result, notifies the owner and pays out. Unhandled failures mark the task FAILED and still answer 200.",
)
def agent_run(payload: Any = Body(None)) -> Any:
    body = parse_body(AgentRunRequest, payload)
    try:
        updated = run_task(body.task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Task not found") from e
    except Exception:
        logger.exception("[api:agent_run] unhandled error task_id=%s", body.task_id)
        mark_failed(body.task_id)
        return JSONResponse({"error": "Agent failed"}, status_code=200)
    return {"task": dump(TaskOut, updated, exclude_none_keys=("payments",))}


@router.get("/api/cron/agent-tick", tags=["cron"], summary="Queue the oldest runnable tasks")
def cron_agent_tick(
    request: Request,
    key: str | None = None,
    x_cron_secret: str | None = Header(default=None),
) -> Any:
    if not is_authorized(x_cron_secret, key):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    queued = agent_tick(config.PUBLIC_BASE_URL or str(request.base_url))
    return {"queued": queued}
