"""
Integration tests for Discord settings and the Discord integration endpoints.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from taskmarket.core import config
from taskmarket.core.errors import DiscordError


class TestDiscordSettings:
    def test_requires_auth(self, client: TestClient) -> None:
        assert client.get("/api/settings/discord").status_code == 401
        assert client.post("/api/settings/discord", json={"channelId": "1"}).status_code == 401

    def test_default_is_empty(self, client: TestClient, auth: dict) -> None:
        response = client.get("/api/settings/discord", headers=auth["headers"])
        assert response.status_code == 200
        assert response.json() == {"discordChannelId": ""}

    def test_save_then_read(self, client: TestClient, auth: dict) -> None:
        saved = client.post("/api/settings/discord", json={"channelId": " 12345 "}, headers=auth["headers"])
        assert saved.json() == {"discordChannelId": "12345"}
        client.post("/api/settings/discord", json={"channelId": "67890"}, headers=auth["headers"])
        response = client.get("/api/settings/discord", headers=auth["headers"])
        assert response.json() == {"discordChannelId": "67890"}

    def test_invalid_body_is_400(self, client: TestClient, auth: dict) -> None:
        response = client.post("/api/settings/discord", json=["x"], headers=auth["headers"])
        assert response.status_code == 400

    def test_non_string_channel_is_400(self, client: TestClient, auth: dict) -> None:
        response = client.post("/api/settings/discord", json={"channelId": ["1"]}, headers=auth["headers"])
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid body"}


class TestDiscordIntegration:
    def test_invite_url(self, client: TestClient) -> None:
        with patch.object(config, "DISCORD_APP_ID", "999"):
            response = client.get("/api/integrations/discord")
        url = response.json()["inviteUrl"]
        assert "client_id=999" in url
        assert "permissions=27648" in url
        assert "scope=bot%20applications.commands" in url

    def test_invite_without_app_id(self, client: TestClient) -> None:
        with patch.object(config, "DISCORD_APP_ID", ""):
            response = client.get("/api/integrations/discord")
        assert response.json() == {"inviteUrl": None, "error": "DISCORD_APP_ID missing"}

    def test_test_message_uses_defaults(self, client: TestClient) -> None:
        with patch.object(config, "DISCORD_BOT_TOKEN", "tok"), \
             patch.object(config, "DISCORD_CHANNEL_ID", "chan"), \
             patch("taskmarket.api.integrations.send_discord_message", return_value={"id": "m1"}) as mock_send:
            response = client.post("/api/integrations/discord", json={})
        assert response.status_code == 200
        assert response.json() == {"id": "m1"}
        mock_send.assert_called_once_with("tok", "chan", "AgenX: test message")

    def test_test_message_missing_credentials_is_400(self, client: TestClient) -> None:
        response = client.post("/api/integrations/discord", json={"content": "hi"})
        assert response.status_code == 400

    def test_test_message_discord_error_is_400(self, client: TestClient) -> None:
        with patch("taskmarket.api.integrations.send_discord_message", side_effect=DiscordError(403, "Missing Access")):
            response = client.post("/api/integrations/discord", json={"botToken": "t", "channelId": "c"})
        assert response.status_code == 400
        assert "403" in response.json()["detail"]
