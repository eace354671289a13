"""
x402 payment endpoints: issue a challenge for a payment row, accept settlement webhooks.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Header, HTTPException

from taskmarket.api.deps import parse_body
from taskmarket.core.config import X402_CHALLENGE_BASE, X402_WEBHOOK_SECRET
from taskmarket.core.db import now_iso
from taskmarket.core.errors import NotFoundError
from taskmarket.schemas.payment import Challenge, ChallengeRequest, WebhookRequest
from taskmarket.services import task_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/challenge", summary="Issue an x402 payment challenge for a payment row")
def create_challenge(payload: Any = Body(None)) -> dict:
    body = parse_body(ChallengeRequest, payload)
    try:
        payment = task_store.update_payment(
            body.payment_id,
            amount=body.amount,
            mint=body.mint,
            network=body.network,
            callback_url=str(body.callback_url) if body.callback_url else None,
            payment_request_url=f"{X402_CHALLENGE_BASE.rstrip('/')}/challenge/{body.payment_id}",
            challenge_id=body.payment_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail="Invalid request") from e
    challenge = Challenge(
        id=payment["challenge_id"],
        amount=payment["amount"],
        mint=payment["mint"],
        network=payment["network"],
        payee=payment["payee_wallet_address"],
        callback_url=payment["callback_url"],
        payment_request_url=payment["payment_request_url"],
    )
    logger.info("[api:payments:challenge] payment_id=%s", body.payment_id)
    return {"challenge": challenge.model_dump(by_alias=True)}


@router.post("/webhook", summary="Settlement notice from the x402 facilitator")
def payment_webhook(
    payload: Any = Body(None),
    x_webhook_secret: str | None = Header(default=None),
) -> dict:
    if X402_WEBHOOK_SECRET and x_webhook_secret != X402_WEBHOOK_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not isinstance(payload, dict) or not payload.get("challengeId") or not payload.get("tx"):
        raise HTTPException(status_code=400, detail="Missing challengeId or tx")
    body = parse_body(WebhookRequest, payload)
    try:
        payment = task_store.update_payment(
            body.challenge_id,
            tx_hash=body.tx,
            settlement_sig=body.tx,
            status="FAILED" if body.status == "FAILED" else "SUCCESS",
            payer_wallet_address=body.payer_wallet,
            payee_wallet_address=body.payee_wallet,
            settled_at=body.settled_at or now_iso(),
        )
        if payment["status"] == "SUCCESS":
            task_store.update_task(payment["task_id"], status="PAID")
    except NotFoundError as e:
        raise HTTPException(status_code=400, detail="Invalid request") from e
    logger.info("[api:payments:webhook] payment_id=%s status=%s", payment["id"], payment["status"])
    return {"ok": True}
