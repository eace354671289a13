"""
Solana treasury: keypair loading, native SOL transfers, SOL/USD conversion.
"""

import base64
import json
import logging
import math
from pathlib import Path

import httpx
from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from taskmarket.core import config
from taskmarket.core.errors import PaymentError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def get_client() -> Client:
    return Client(config.SOLANA_RPC_URL, commitment=Confirmed)


def _keypair_from_json(raw: str) -> Keypair:
    arr = json.loads(raw)
    if not isinstance(arr, list) or not all(isinstance(x, int) for x in arr):
        raise PaymentError("Invalid keypair JSON; expected a list of ints")
    return Keypair.from_bytes(bytes(arr))


def load_treasury_keypair() -> Keypair:
    """
    Load the treasury keypair, in order of precedence:
    PAYER_KEYPAIR_JSON (JSON int array), PAYER_KEYPAIR_B64 (base64 of that JSON),
    then the file at PAYER_KEYPAIR_PATH (relative paths resolve against cwd).
    """
    if config.PAYER_KEYPAIR_JSON:
        return _keypair_from_json(config.PAYER_KEYPAIR_JSON)
    if config.PAYER_KEYPAIR_B64:
        return _keypair_from_json(base64.b64decode(config.PAYER_KEYPAIR_B64).decode("utf-8"))
    path = Path(config.PAYER_KEYPAIR_PATH)
    if not path.is_absolute():
        path = Path.cwd() / path
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PaymentError(f"Treasury keypair not found at {path}") from e
    return _keypair_from_json(raw)


def sol_to_lamports(amount_sol: float) -> int:
    return math.floor(amount_sol * LAMPORTS_PER_SOL)


def transfer_sol(recipient: str, amount_sol: float) -> str:
    """Send amount_sol from the treasury to recipient and wait for confirmation. Returns the signature."""
    lamports = sol_to_lamports(amount_sol)
    if lamports <= 0:
        raise ValueError("amount_sol must be at least one lamport")
    try:
        to_pubkey = Pubkey.from_string(recipient)
    except ValueError as e:
        raise ValueError(f"Invalid recipient address: {e}") from e

    payer = load_treasury_keypair()
    client = get_client()
    ix = transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=to_pubkey, lamports=lamports))
    blockhash_resp = client.get_latest_blockhash()
    recent_blockhash = Hash.from_string(str(blockhash_resp.value.blockhash))
    msg = Message.new_with_blockhash([ix], payer.pubkey(), recent_blockhash)
    tx = Transaction([payer], msg, recent_blockhash)

    logger.info("[solana:transfer_sol] IN  recipient=%s lamports=%d", recipient, lamports)
    result = client.send_transaction(tx)
    if not result.value:
        raise PaymentError(f"Transaction failed: {result}")
    client.confirm_transaction(result.value, commitment=Confirmed)
    sig = str(result.value)
    logger.info("[solana:transfer_sol] OUT sig=%s", sig)
    return sig


def get_sol_price_usd() -> float | None:
    """SOL price in USD from CoinGecko, or None."""
    try:
        with httpx.Client(timeout=config.TOOLS_HTTP_TIMEOUT) as client:
            response = client.get(config.COINGECKO_PRICE_URL, params={"ids": "solana", "vs_currencies": "usd"})
        if not response.is_success:
            return None
        price = (response.json().get("solana") or {}).get("usd")
    except Exception as e:
        logger.warning("[solana:get_sol_price_usd] failed: %s", e)
        return None
    return float(price) if isinstance(price, (int, float)) else None


def usd_to_sol(usd: float) -> float | None:
    price = get_sol_price_usd()
    if not price or price <= 0:
        return None
    return usd / price


def explorer_link(signature: str, cluster: str | None = None) -> str:
    return f"{config.SOLANA_EXPLORER_TX}/{signature}?cluster={cluster or config.SOLANA_NETWORK}"
