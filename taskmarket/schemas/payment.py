"""Schemas for x402 payment challenges and settlement webhooks."""

from pydantic import Field, HttpUrl

from taskmarket.schemas.common import ApiModel


class ChallengeRequest(ApiModel):
    payment_id: str
    amount: str | None = None
    mint: str | None = None
    network: str | None = None
    callback_url: HttpUrl | None = None


class Challenge(ApiModel):
    id: str | None = None
    amount: str
    mint: str | None = None
    network: str
    payee: str | None = None
    callback_url: str | None = None
    payment_request_url: str | None = None


class WebhookRequest(ApiModel):
    """Settlement notice. challengeId is the payment id the challenge was issued for."""

    challenge_id: str = Field(..., min_length=1)
    tx: str = Field(..., min_length=1)
    status: str | None = None
    payer_wallet: str | None = None
    payee_wallet: str | None = None
    settled_at: str | None = None
