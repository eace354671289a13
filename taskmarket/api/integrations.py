"""Discord integration endpoints: bot invite link and a test message."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from taskmarket.api.deps import parse_body
from taskmarket.core import config
from taskmarket.core.errors import DiscordError
from taskmarket.integrations.discord import build_invite_url, send_discord_message
from taskmarket.schemas.settings import DiscordTestMessage

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/integrations", tags=["integrations"])


@router.get("/discord", summary="Bot invite URL")
def discord_invite() -> dict:
    if not config.DISCORD_APP_ID:
        return {"inviteUrl": None, "error": "DISCORD_APP_ID missing"}
    return {"inviteUrl": build_invite_url(config.DISCORD_APP_ID)}


@router.post("/discord", summary="Send a test message to a Discord channel")
def discord_test_message(payload: Any = Body(None)) -> dict:
    body = parse_body(DiscordTestMessage, payload if isinstance(payload, dict) else {})
    content = body.content or "AgenX: test message"
    token = body.bot_token or config.DISCORD_BOT_TOKEN
    channel_id = body.channel_id or config.DISCORD_CHANNEL_ID
    if not token or not channel_id:
        raise HTTPException(status_code=400, detail="Missing DISCORD_BOT_TOKEN or DISCORD_CHANNEL_ID")
    try:
        return send_discord_message(token, channel_id, content)
    except DiscordError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.warning("[api:discord_test_message] failed: %s", e)
        raise HTTPException(status_code=400, detail=str(e) or "Failed to send test message") from e
