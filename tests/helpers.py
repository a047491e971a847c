"""
Test helpers
============
Fake HTTP sessions, payload and quote builders shared by the tests.
"""

import base64
import json
from decimal import Decimal
from typing import Any, List

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from lifiswap.core.models import FeeCost, QuoteRecord, SwapRoute, TokenInfo

SOL_MINT = "So11111111111111111111111111111111111111112"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
EVM_ADDRESS = "0x77b13aE271BADdBf498ff7b9B98c07377ed2fcbB"


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeSession:
    """Replays queued responses (or exceptions) and records every GET."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses: List[Any] = list(responses)
        self.calls: List[dict] = []

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if not self.responses:
            raise AssertionError(f"unexpected GET {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def paths(self) -> List[str]:
        return [call["url"].rsplit("/", 1)[-1] for call in self.calls]


def build_payload(keypair: Keypair) -> str:
    """A base64 VersionedTransaction whose only signer is ``keypair``."""
    ix = transfer(TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1_000))
    message = MessageV0.try_compile(keypair.pubkey(), [ix], [], Hash.default())
    return base64.b64encode(bytes(VersionedTransaction(message, [keypair]))).decode()


def quote_body(payload: str, from_amount: str = "10000000", to_amount: str = "9950000") -> dict:
    return {
        "tool": "jupiter",
        "toolDetails": {"key": "jupiter", "name": "Jupiter"},
        "action": {
            "fromToken": {"address": SOL_MINT, "symbol": "SOL", "name": "Wrapped SOL", "decimals": 9, "priceUSD": "150"},
            "toToken": {"address": USDT_MINT, "symbol": "USDT", "name": "Tether", "decimals": 6, "priceUSD": "1"},
            "fromAmount": from_amount,
            "slippage": 0.005,
        },
        "estimate": {
            "toAmount": to_amount,
            "toAmountMin": "9900250",
            "fromAmountUSD": "1.50",
            "toAmountUSD": "1.49",
            "gasCosts": [{"amount": "5000", "amountUSD": "0.0007", "token": {"symbol": "SOL", "decimals": 9}}],
            "feeCosts": [{"amount": "25000", "amountUSD": "0.0037", "token": {"symbol": "SOL", "decimals": 9}}],
        },
        "transactionRequest": {"data": payload},
    }


def connections_body() -> dict:
    return {
        "connections": [
            {
                "fromChainId": 1151111081099710,
                "toChainId": 1151111081099710,
                "fromTokens": [{"address": SOL_MINT, "symbol": "SOL", "name": "Wrapped SOL", "decimals": 9, "priceUSD": "150"}],
                "toTokens": [{"address": USDT_MINT, "symbol": "USDT", "name": "Tether", "decimals": 6, "priceUSD": "1"}],
            }
        ]
    }


def make_quote(payload: str = "", *, from_amount=10_000_000, to_amount=9_950_000, to_chain="sol",
               to_address="") -> QuoteRecord:
    return QuoteRecord(
        route=SwapRoute("sol", to_chain, SOL_MINT, USDT_MINT),
        from_amount=from_amount,
        to_amount=to_amount,
        to_amount_min=9_900_250,
        from_token=TokenInfo(address=SOL_MINT, symbol="SOL", decimals=9),
        to_token=TokenInfo(address=USDT_MINT, symbol="USDT", decimals=6),
        fees=(FeeCost("fee", 25_000, 9, "SOL", Decimal("0.0037")),),
        slippage=Decimal("0.005"),
        tool="jupiter",
        tool_name="Jupiter",
        transaction_data=payload,
        from_address="sender",
        to_address=to_address or "receiver",
    )


