"""
Status notifications to the task owner's Discord channel.

Never raises: a missing bot token or channel skips the message, and send
failures are logged so the fulfillment flow is not interrupted.
"""

import logging

from taskmarket.core import config
from taskmarket.integrations.discord import send_discord_message
from taskmarket.services.user_store import get_discord_channel

logger = logging.getLogger(__name__)


def notify_discord_for_user(user_id: str, content: str) -> bool:
    """Send content to the user's channel (or the fallback channel). Returns True when sent."""
    if not config.DISCORD_BOT_TOKEN:
        if config.DEBUG_DISCORD:
            logger.warning("[notifier] skip: DISCORD_BOT_TOKEN missing")
        return False
    try:
        channel_id = get_discord_channel(user_id) or config.DISCORD_CHANNEL_ID
    except Exception as e:
        logger.warning("[notifier] channel lookup failed user_id=%s: %s", user_id, e)
        channel_id = config.DISCORD_CHANNEL_ID
    if not channel_id:
        if config.DEBUG_DISCORD:
            logger.warning("[notifier] skip: no discord channel for user and no fallback channel")
        return False
    try:
        send_discord_message(config.DISCORD_BOT_TOKEN, channel_id, content)
    except Exception as e:
        if config.DEBUG_DISCORD:
            logger.warning("[notifier] send failed: %s", e)
        else:
            logger.info("[notifier] send failed user_id=%s", user_id)
        return False
    return True
