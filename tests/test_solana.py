"""
Unit tests for treasury keypair loading, SOL transfers and price conversion.
"""

import base64
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature

from taskmarket.core import config
from taskmarket.core.errors import PaymentError
from taskmarket.payments.solana import (
    explorer_link,
    get_sol_price_usd,
    load_treasury_keypair,
    sol_to_lamports,
    transfer_sol,
    usd_to_sol,
)

MOD = "taskmarket.payments.solana"


def _keypair_json(kp: Keypair) -> str:
    return json.dumps(list(bytes(kp)))


class TestKeypair:
    def test_from_json_env(self) -> None:
        kp = Keypair()
        with patch.object(config, "PAYER_KEYPAIR_JSON", _keypair_json(kp)):
            assert load_treasury_keypair().pubkey() == kp.pubkey()

    def test_from_base64_env(self) -> None:
        kp = Keypair()
        encoded = base64.b64encode(_keypair_json(kp).encode()).decode()
        with patch.object(config, "PAYER_KEYPAIR_JSON", ""), patch.object(config, "PAYER_KEYPAIR_B64", encoded):
            assert load_treasury_keypair().pubkey() == kp.pubkey()

    def test_from_file(self, tmp_path) -> None:
        kp = Keypair()
        path = tmp_path / "wallet.json"
        path.write_text(_keypair_json(kp))
        with patch.object(config, "PAYER_KEYPAIR_JSON", ""), \
             patch.object(config, "PAYER_KEYPAIR_B64", ""), \
             patch.object(config, "PAYER_KEYPAIR_PATH", str(path)):
            assert load_treasury_keypair().pubkey() == kp.pubkey()

    def test_missing_file_raises(self, tmp_path) -> None:
        with patch.object(config, "PAYER_KEYPAIR_JSON", ""), \
             patch.object(config, "PAYER_KEYPAIR_B64", ""), \
             patch.object(config, "PAYER_KEYPAIR_PATH", str(tmp_path / "none.json")):
            with pytest.raises(PaymentError):
                load_treasury_keypair()

    def test_bad_json_shape_raises(self) -> None:
        with patch.object(config, "PAYER_KEYPAIR_JSON", '{"secret": 1}'):
            with pytest.raises(PaymentError):
                load_treasury_keypair()


def test_sol_to_lamports_floors() -> None:
    assert sol_to_lamports(0.1) == 100_000_000
    assert sol_to_lamports(0.0000000019) == 1


class TestTransfer:
    def test_sends_and_confirms(self) -> None:
        payer = Keypair()
        sig = Signature.default()
        rpc = MagicMock()
        rpc.get_latest_blockhash.return_value.value.blockhash = Hash.default()
        rpc.send_transaction.return_value.value = sig
        with patch(f"{MOD}.load_treasury_keypair", return_value=payer), patch(f"{MOD}.get_client", return_value=rpc):
            out = transfer_sol(str(Keypair().pubkey()), 0.01)
        assert out == str(sig)
        rpc.confirm_transaction.assert_called_once()

    def test_zero_amount_raises(self) -> None:
        with pytest.raises(ValueError):
            transfer_sol(str(Keypair().pubkey()), 0)

    def test_bad_recipient_raises(self) -> None:
        with pytest.raises(ValueError):
            transfer_sol("not-a-pubkey", 0.01)


class TestPrice:
    def _http(self, response: httpx.Response):
        p = patch(f"{MOD}.httpx.Client")
        mock_cls = p.start()
        mock_cls.return_value.__enter__.return_value.get.return_value = response
        return p

    def test_price_and_conversion(self) -> None:
        p = self._http(httpx.Response(200, json={"solana": {"usd": 150}}))
        try:
            assert get_sol_price_usd() == 150.0
            assert usd_to_sol(3.0) == pytest.approx(0.02)
        finally:
            p.stop()

    def test_bad_response_is_none(self) -> None:
        p = self._http(httpx.Response(429, text="slow down"))
        try:
            assert get_sol_price_usd() is None
            assert usd_to_sol(3.0) is None
        finally:
            p.stop()


def test_explorer_link() -> None:
    assert explorer_link("abc", "devnet") == "https://explorer.solana.com/tx/abc?cluster=devnet"
