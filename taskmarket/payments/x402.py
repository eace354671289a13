"""
x402 paid HTTP: answer "402 Payment Required" challenges with a Solana USDC payment.

PaidClient wraps httpx.Client. When a response is 402 and carries an `accepts`
list, it picks an `exact` requirement on our Solana network, builds an SPL
transferChecked of maxAmountRequired to payTo, partially signs it with the
treasury key (the facilitator co-signs as fee payer when it asks to) and
retries the request once with the X-PAYMENT header.
"""

import base64
import json
import logging
from typing import Any

import httpx
from solana.exceptions import SolanaRpcException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import TransferCheckedParams, get_associated_token_address, transfer_checked

from taskmarket.core import config
from taskmarket.core.errors import PaymentError
from taskmarket.payments.solana import get_client, load_treasury_keypair

logger = logging.getLogger(__name__)

PAYMENT_HEADER = "X-PAYMENT"
PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

# Cluster name -> x402 network identifier
X402_NETWORKS: dict[str, str] = {
    "devnet": "solana-devnet",
    "testnet": "solana-testnet",
    "mainnet-beta": "solana",
}


def resolve_network(name: str | None = None) -> str:
    """Configured cluster, or devnet when it is not a known cluster."""
    env_net = (name or config.SOLANA_NETWORK or "").strip()
    return env_net if env_net in config.SOLANA_CLUSTERS else "devnet"


def lookup_usdc_mint(network: str) -> str | None:
    return config.USDC_MINT or config.KNOWN_USDC_MINTS.get(network)


def select_requirement(accepts: Any, network: str, mint: str) -> dict[str, Any] | None:
    """First `exact` requirement for our x402 network and (when stated) our mint."""
    if not isinstance(accepts, list):
        return None
    wanted = X402_NETWORKS.get(network, "solana-devnet")
    for req in accepts:
        if not isinstance(req, dict):
            continue
        if req.get("scheme") != "exact" or req.get("network") != wanted:
            continue
        asset = req.get("asset")
        if asset and asset != mint:
            continue
        if not str(req.get("maxAmountRequired") or "").isdigit():
            continue
        try:
            Pubkey.from_string(str(req.get("payTo") or ""))
        except ValueError:
            continue
        return req
    return None


class PaidClient:
    """httpx.Client wrapper that pays x402 challenges once per request."""

    def __init__(
        self,
        keypair: Keypair,
        network: str,
        usdc_mint: str,
        timeout: float = config.RESEARCH_API_TIMEOUT,
        http: httpx.Client | None = None,
    ) -> None:
        self.keypair = keypair
        self.network = network
        self.usdc_mint = Pubkey.from_string(usdc_mint)
        self._http = http or httpx.Client(timeout=timeout, follow_redirects=True)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PaidClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        response = self._http.request(method, url, **kwargs)
        if response.status_code != 402:
            return response
        try:
            challenge = response.json()
        except ValueError:
            logger.info("[x402] 402 without JSON body url=%s", url)
            return response
        if not isinstance(challenge, dict):
            logger.info("[x402] 402 body is not an object url=%s", url)
            return response
        requirement = select_requirement(challenge.get("accepts"), self.network, str(self.usdc_mint))
        if requirement is None:
            logger.info("[x402] no usable payment requirement url=%s", url)
            return response
        try:
            header = self.build_payment_header(requirement, challenge.get("x402Version") or config.X402_VERSION)
        except (ValueError, TypeError, AttributeError, PaymentError, httpx.HTTPError, SolanaRpcException) as e:
            logger.warning("[x402] could not build payment url=%s: %s", url, e)
            return response
        headers = dict(kwargs.pop("headers", None) or {})
        headers[PAYMENT_HEADER] = header
        logger.info(
            "[x402] paying url=%s amount=%s pay_to=%s",
            url, requirement.get("maxAmountRequired"), requirement.get("payTo"),
        )
        paid = self._http.request(method, url, headers=headers, **kwargs)
        logger.info("[x402] paid retry status=%s settled=%s", paid.status_code, PAYMENT_RESPONSE_HEADER in paid.headers)
        return paid

    def build_payment_header(self, requirement: dict[str, Any], version: int = config.X402_VERSION) -> str:
        """Base64 JSON payment payload carrying a partially signed USDC transfer."""
        amount = int(requirement["maxAmountRequired"])
        extra = requirement.get("extra")
        extra = extra if isinstance(extra, dict) else {}
        decimals = int(extra.get("decimals") or config.USDC_DECIMALS)
        owner = self.keypair.pubkey()
        pay_to = Pubkey.from_string(requirement["payTo"])
        fee_payer_str = extra.get("feePayer")
        fee_payer = Pubkey.from_string(fee_payer_str) if fee_payer_str else owner

        ix = transfer_checked(
            TransferCheckedParams(
                program_id=TOKEN_PROGRAM_ID,
                source=get_associated_token_address(owner, self.usdc_mint),
                mint=self.usdc_mint,
                dest=get_associated_token_address(pay_to, self.usdc_mint),
                owner=owner,
                amount=amount,
                decimals=decimals,
            )
        )
        blockhash_resp = get_client().get_latest_blockhash()
        recent_blockhash = Hash.from_string(str(blockhash_resp.value.blockhash))
        msg = Message.new_with_blockhash([ix], fee_payer, recent_blockhash)
        tx = Transaction.new_unsigned(msg)
        tx.partial_sign([self.keypair], recent_blockhash)

        payload = {
            "x402Version": version,
            "scheme": "exact",
            "network": requirement["network"],
            "payload": {"transaction": base64.b64encode(bytes(tx)).decode("ascii")},
        }
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")


def get_paid_client() -> PaidClient | None:
    """
    Paid client for the configured cluster. Returns None (logged) when no
    treasury keypair is configured, so callers fall back to plain HTTP.
    Raises PaymentError when no USDC mint is known for the cluster.
    """
    network = resolve_network()
    mint = lookup_usdc_mint(network)
    if not mint:
        raise PaymentError(
            f"USDC mint not found for network={network}. Set USDC_MINT in env."
        )
    try:
        keypair = load_treasury_keypair()
    except PaymentError as e:
        logger.warning("[x402] paid HTTP disabled: %s", e.message)
        return None
    return PaidClient(keypair, network, mint)


def x402_demo_call(client: Any) -> dict[str, Any]:
    """One JSON-RPC getBlockHeight call to the x402 demo endpoint. Never raises."""
    body = {"jsonrpc": "2.0", "id": 1, "method": "getBlockHeight"}
    try:
        if client is None:
            with httpx.Client(timeout=config.TOOLS_HTTP_TIMEOUT) as c:
                response = c.post(config.X402_DEMO_URL, json=body)
        else:
            response = client.post(config.X402_DEMO_URL, json=body)
    except Exception as e:
        logger.warning("[x402:demo] failed: %s", e)
        return {"ok": False, "error": str(e)}
    return {"ok": response.is_success, "status": response.status_code}
