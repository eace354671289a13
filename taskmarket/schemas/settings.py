"""Schemas for Discord settings and the Discord test message."""

from taskmarket.schemas.common import ApiModel


class DiscordSettings(ApiModel):
    discord_channel_id: str = ""


class DiscordSettingsUpdate(ApiModel):
    channel_id: str | None = None


class DiscordTestMessage(ApiModel):
    content: str | None = None
    bot_token: str | None = None
    channel_id: str | None = None
