"""
Shared fixtures: every test gets its own SQLite file, uploads go to tmp_path,
and no vendor key from the developer's .env leaks into a test.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from taskmarket.core import config
from taskmarket.main import app


@pytest.fixture(autouse=True)
def tmp_db(tmp_path, monkeypatch):
    monkeypatch.setattr("taskmarket.core.db._DB_PATH", tmp_path / "test.db")
    monkeypatch.setattr("taskmarket.services.documents._project_root", lambda: tmp_path)
    return tmp_path / "test.db"


@pytest.fixture(autouse=True)
def no_vendor_keys(monkeypatch):
    for name in ("OPENAI_API_KEY", "DISCORD_BOT_TOKEN", "DISCORD_CHANNEL_ID", "AGENT_PUBLIC_KEY", "CRON_SECRET", "PUBLIC_BASE_URL"):
        monkeypatch.setattr(config, name, "")
    monkeypatch.setattr(config, "PAYOUT_SOL", 0.0)
    monkeypatch.setattr(config, "PAYOUT_USD", 0.0)
    monkeypatch.setattr("taskmarket.agent.llm.OPENAI_API_KEY", "")
    monkeypatch.setattr("taskmarket.agent.instructions.OPENAI_API_KEY", "")
    monkeypatch.setattr("taskmarket.agent.research.PERPLEXITY_API_KEY", "")
    monkeypatch.setattr("taskmarket.agent.research.TAVILY_API_KEY", "")
    monkeypatch.setattr("taskmarket.api.payments.X402_WEBHOOK_SECRET", "")


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def register(client: TestClient):
    """Factory: register(email=..., password=...) -> {"user": {...}, "token": ...}."""

    def _register(email: str = "alice@example.com", password: str = "secret123") -> dict:
        response = client.post("/api/auth/register", json={"email": email, "password": password, "name": "Alice"})
        assert response.status_code == 200, response.text
        return response.json()

    return _register


@pytest.fixture
def auth(register) -> dict:
    """Registered user: {"user": {...}, "token": ..., "headers": {...}}."""
    data = register()
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data


@pytest.fixture
def no_paid_client():
    """Pipeline/agent runs without touching the x402 keypair setup."""
    with patch("taskmarket.agent.graph.get_paid_client", return_value=None):
        yield
