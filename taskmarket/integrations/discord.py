"""
Discord REST client: post channel messages as the bot, build the bot invite URL.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from taskmarket.core.config import DISCORD_API_BASE, DISCORD_API_TIMEOUT
from taskmarket.core.errors import DiscordError

logger = logging.getLogger(__name__)

# View Channels (1024) + Send Messages (2048) + Attach Files (8192) + Embed Links (16384)
BOT_PERMISSIONS = 27648
BOT_SCOPE = "bot applications.commands"


def build_invite_url(app_id: str) -> str:
    scope = quote(BOT_SCOPE)
    return f"https://discord.com/oauth2/authorize?client_id={app_id}&permissions={BOT_PERMISSIONS}&scope={scope}"


def send_discord_message(
    bot_token: str,
    channel_id: str,
    content: str | None = None,
    embeds: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Post a message to a channel. Returns the created message object.
    Raises DiscordError on a non-2xx answer.
    """
    url = f"{DISCORD_API_BASE}/channels/{channel_id}/messages"
    headers = {"Authorization": f"Bot {bot_token}", "Content-Type": "application/json"}
    payload: dict[str, Any] = {"content": content or ""}
    if embeds:
        payload["embeds"] = embeds
    with httpx.Client(timeout=DISCORD_API_TIMEOUT) as client:
        response = client.post(url, json=payload, headers=headers)
    if not response.is_success:
        raise DiscordError(response.status_code, response.text)
    logger.info("[discord] sent message channel_id=%s content_len=%d", channel_id, len(content or ""))
    try:
        return response.json()
    except ValueError:
        return {"ok": True}
