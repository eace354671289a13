"""
Integration tests for x402 payment challenges and settlement webhooks.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from taskmarket.services import task_store


def _task_with_payment(user_id: str) -> tuple[dict, dict]:
    task = task_store.create_task(
        {"type": "SUMMARIZATION", "title": "t", "payout_amount": "0.5", "created_by_id": user_id},
        initial_payment={"payer_user_id": user_id, "amount": "0.5", "currency": "USDC", "network": "devnet"},
    )
    return task, task_store.list_payments(task["id"])[0]


def test_challenge_sets_request_url(client: TestClient, auth: dict) -> None:
    _, payment = _task_with_payment(auth["user"]["id"])
    response = client.post(
        "/api/payments/challenge",
        json={"paymentId": payment["id"], "amount": "0.75", "mint": "USDC", "network": "devnet", "callbackUrl": "https://app.example/cb"},
    )
    assert response.status_code == 200
    challenge = response.json()["challenge"]
    assert challenge["id"] == payment["id"]
    assert challenge["amount"] == "0.75"
    assert challenge["paymentRequestUrl"].endswith(f"/challenge/{payment['id']}")
    assert challenge["callbackUrl"] == "https://app.example/cb"
    stored = task_store.get_payment(payment["id"])
    assert stored["challenge_id"] == payment["id"]
    assert stored["status"] == "PENDING"


def test_challenge_unknown_payment_is_400(client: TestClient) -> None:
    response = client.post("/api/payments/challenge", json={"paymentId": "nope"})
    assert response.status_code == 400


def test_challenge_missing_payment_id_is_400(client: TestClient) -> None:
    assert client.post("/api/payments/challenge", json={}).status_code == 400


def test_webhook_success_marks_task_paid(client: TestClient, auth: dict) -> None:
    task, payment = _task_with_payment(auth["user"]["id"])
    response = client.post(
        "/api/payments/webhook",
        json={"challengeId": payment["id"], "tx": "5abc", "payerWallet": "PayerPk"},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    stored = task_store.get_payment(payment["id"])
    assert stored["status"] == "SUCCESS"
    assert stored["tx_hash"] == "5abc"
    assert stored["payer_wallet_address"] == "PayerPk"
    assert stored["settled_at"]
    assert task_store.get_task(task["id"])["status"] == "PAID"


def test_webhook_failed_leaves_task(client: TestClient, auth: dict) -> None:
    task, payment = _task_with_payment(auth["user"]["id"])
    client.post("/api/payments/webhook", json={"challengeId": payment["id"], "tx": "5abc", "status": "FAILED"})
    assert task_store.get_payment(payment["id"])["status"] == "FAILED"
    assert task_store.get_task(task["id"])["status"] == "POSTED"


def test_webhook_other_status_counts_as_success(client: TestClient, auth: dict) -> None:
    task, payment = _task_with_payment(auth["user"]["id"])
    response = client.post(
        "/api/payments/webhook",
        json={"challengeId": payment["id"], "tx": "5abc", "status": "settled"},
    )
    assert response.status_code == 200
    assert task_store.get_payment(payment["id"])["status"] == "SUCCESS"
    assert task_store.get_task(task["id"])["status"] == "PAID"


def test_webhook_missing_fields_is_400(client: TestClient) -> None:
    response = client.post("/api/payments/webhook", json={"challengeId": "x"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Missing challengeId or tx"}


def test_webhook_unknown_payment_is_400(client: TestClient) -> None:
    response = client.post("/api/payments/webhook", json={"challengeId": "nope", "tx": "5abc"})
    assert response.status_code == 400


def test_webhook_secret_enforced_when_configured(client: TestClient, auth: dict) -> None:
    _, payment = _task_with_payment(auth["user"]["id"])
    body = {"challengeId": payment["id"], "tx": "5abc"}
    with patch("taskmarket.api.payments.X402_WEBHOOK_SECRET", "s3cret"):
        assert client.post("/api/payments/webhook", json=body).status_code == 401
        ok = client.post("/api/payments/webhook", json=body, headers={"x-webhook-secret": "s3cret"})
    assert ok.status_code == 200
