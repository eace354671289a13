"""
Scheduler tick: hand the oldest runnable tasks to the agent-run endpoint.
"""

import logging

import httpx

from taskmarket.core import config
from taskmarket.services.task_store import list_runnable

logger = logging.getLogger(__name__)


def is_authorized(header_secret: str | None, query_key: str | None) -> bool:
    """True when no CRON_SECRET is configured or either credential matches it."""
    secret = config.CRON_SECRET
    if not secret:
        return True
    return header_secret == secret or query_key == secret


def post_agent_run(base_url: str, task_id: str) -> None:
    with httpx.Client(timeout=config.AGENT_RUN_TIMEOUT) as client:
        client.post(f"{base_url.rstrip('/')}/api/agent/run", json={"taskId": task_id})


def agent_tick(base_url: str | None = None) -> int:
    """POST each of the CRON_BATCH_SIZE oldest ASSIGNED/IN_PROGRESS tasks to /api/agent/run. Returns the count."""
    tasks = list_runnable(config.CRON_BATCH_SIZE)
    base = base_url or config.PUBLIC_BASE_URL or "http://localhost:8000"
    logger.info("[cron:agent_tick] IN  runnable=%d base_url=%s", len(tasks), base)
    for task in tasks:
        try:
            post_agent_run(base, task["id"])
        except Exception as e:
            logger.warning("[cron:agent_tick] agent run request failed task_id=%s: %s", task["id"], e)
    return len(tasks)
