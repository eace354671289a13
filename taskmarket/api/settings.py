"""Per-user settings: the Discord channel that receives task notifications."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from taskmarket.api.deps import parse_body, require_user
from taskmarket.core.auth import AuthUser
from taskmarket.schemas.settings import DiscordSettings, DiscordSettingsUpdate
from taskmarket.services.user_store import get_discord_channel, set_discord_channel

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/discord", response_model=DiscordSettings)
def get_discord_settings(user: AuthUser = Depends(require_user)) -> DiscordSettings:
    return DiscordSettings(discord_channel_id=get_discord_channel(user.id))


@router.post("/discord", response_model=DiscordSettings)
def save_discord_settings(payload: Any = Body(None), user: AuthUser = Depends(require_user)) -> DiscordSettings:
    body = parse_body(DiscordSettingsUpdate, payload, detail="Invalid body")
    saved = set_discord_channel(user.id, (body.channel_id or "").strip())
    return DiscordSettings(discord_channel_id=saved)
