"""
Integration tests for POST /api/agent/run and GET /api/cron/agent-tick.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from taskmarket.core import config
from taskmarket.services import task_store


def _task(status: str = "ASSIGNED", **fields) -> dict:
    task = task_store.create_task({"type": "SUMMARIZATION", "title": "Solana fees", "payout_amount": "0.1", **fields})
    return task_store.update_task(task["id"], status=status)


class TestAgentRun:
    def test_run_completes_task(self, client: TestClient) -> None:
        task = _task()
        with patch("taskmarket.services.task_runner.run_task_agent", return_value={"final": "- fees are low", "tools_used": []}), \
             patch("taskmarket.services.task_runner.run_x402_demo_once", return_value={"ok": True}):
            response = client.post("/api/agent/run", json={"taskId": task["id"]})
        assert response.status_code == 200
        body = response.json()["task"]
        assert body["status"] == "COMPLETED"
        assert body["resultText"] == "- fees are low"

    def test_run_missing_task_is_404(self, client: TestClient) -> None:
        response = client.post("/api/agent/run", json={"taskId": "nope"})
        assert response.status_code == 404

    def test_run_without_task_id_is_400(self, client: TestClient) -> None:
        assert client.post("/api/agent/run", json={}).status_code == 400

    def test_unhandled_error_marks_failed_and_answers_200(self, client: TestClient) -> None:
        task = _task()
        with patch("taskmarket.services.task_runner.generate_instructions", side_effect=RuntimeError("boom")):
            response = client.post("/api/agent/run", json={"taskId": task["id"]})
        assert response.status_code == 200
        assert response.json() == {"error": "Agent failed"}
        assert task_store.get_task(task["id"])["status"] == "FAILED"


class TestCronTick:
    def test_posts_oldest_runnable_tasks(self, client: TestClient) -> None:
        tasks = [_task() for _ in range(4)]
        _task(status="POSTED")
        with patch("taskmarket.services.cron.post_agent_run") as mock_post:
            response = client.get("/api/cron/agent-tick")
        assert response.status_code == 200
        assert response.json() == {"queued": 3}
        posted = [c.args[1] for c in mock_post.call_args_list]
        assert posted == [t["id"] for t in tasks[:3]]
        assert mock_post.call_args_list[0].args[0] == "http://testserver/"

    def test_public_base_url_wins(self, client: TestClient) -> None:
        _task()
        with patch.object(config, "PUBLIC_BASE_URL", "https://agenx.example"), \
             patch("taskmarket.services.cron.post_agent_run") as mock_post:
            client.get("/api/cron/agent-tick")
        mock_post.assert_called_once()
        assert mock_post.call_args.args[0] == "https://agenx.example"

    def test_secret_required_when_configured(self, client: TestClient) -> None:
        with patch.object(config, "CRON_SECRET", "tick"), \
             patch("taskmarket.services.cron.post_agent_run"):
            assert client.get("/api/cron/agent-tick").status_code == 401
            assert client.get("/api/cron/agent-tick", params={"key": "tick"}).status_code == 200
            assert client.get("/api/cron/agent-tick", headers={"x-cron-secret": "tick"}).status_code == 200

    def test_unauthorized_body(self, client: TestClient) -> None:
        with patch.object(config, "CRON_SECRET", "tick"):
            response = client.get("/api/cron/agent-tick", params={"key": "wrong"})
        assert response.json() == {"error": "Unauthorized"}

    def test_failed_post_does_not_stop_batch(self, client: TestClient) -> None:
        _task()
        _task()
        with patch("taskmarket.services.cron.post_agent_run", side_effect=[OSError("refused"), None]) as mock_post:
            response = client.get("/api/cron/agent-tick")
        assert response.json() == {"queued": 2}
        assert mock_post.call_count == 2
