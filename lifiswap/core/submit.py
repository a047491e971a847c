"""Sign and broadcast the quoted Solana transaction with bounded retries."""

from __future__ import annotations

import base64
import binascii
from typing import Optional, Tuple

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.types import TxOpts
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from lifiswap.core.errors import (
    InsufficientFundsError,
    MalformedTransactionError,
    SubmissionFailedError,
    TransportError,
)
from lifiswap.core.models import QuoteRecord, SubmissionAttempt
from lifiswap.core.retry import RetryPolicy
from lifiswap.core.utils import format_amount, get_logger

LOGGER = get_logger("lifiswap.submit")

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
ALREADY_PROCESSED_MARKERS = ("already been processed", "AlreadyProcessed")


def decode_transaction(payload: str) -> VersionedTransaction:
    """Deserialize a base64 LI.FI payload into a VersionedTransaction."""
    if not payload:
        raise MalformedTransactionError("No transaction data provided")
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTransactionError(f"Transaction data is not valid base64: {exc}") from exc
    try:
        return VersionedTransaction.from_bytes(raw)
    except Exception as exc:
        raise MalformedTransactionError(f"Failed to deserialize transaction: {exc}") from exc


class TransactionSubmitter:
    """Turns a quote's payload into one signed, broadcast transaction.

    The keypair is held privately and only used to sign. One attempt may be in
    flight at a time; call :meth:`release` once it reaches a terminal state.

    Retried broadcasts resend byte-identical signed bytes, so the signature is
    fixed before the first send. An RPC answer saying the transaction was
    already processed is treated as acceptance of that signature.
    """

    def __init__(
        self,
        client: Client,
        keypair: Keypair,
        *,
        policy: Optional[RetryPolicy] = None,
        expiry_margin: int = 150,
        commitment: Commitment = Commitment("confirmed"),
    ) -> None:
        self.client = client
        self._keypair = keypair
        self.policy = policy or RetryPolicy()
        self.expiry_margin = expiry_margin
        self.commitment = commitment
        self._in_flight: Optional[SubmissionAttempt] = None

    @property
    def public_key(self) -> str:
        return str(self._keypair.pubkey())

    @property
    def in_flight(self) -> Optional[SubmissionAttempt]:
        return self._in_flight

    def release(self) -> None:
        self._in_flight = None

    def check_health(self) -> None:
        try:
            self.client.get_version()
        except Exception as exc:
            LOGGER.error("Solana connection error: %s", exc)
            raise TransportError(f"Solana connection is not healthy: {exc}") from exc
        LOGGER.info("Solana connection is healthy")

    def check_balance(self, quote: QuoteRecord) -> int:
        """Ensure the signer holds at least the quoted amount of native SOL."""
        balance = self.client.get_balance(self._keypair.pubkey()).value
        LOGGER.info("Current wallet balance: %s SOL", format_amount(balance, 9))
        if quote.route.from_token == WRAPPED_SOL_MINT and balance < quote.from_amount:
            raise InsufficientFundsError(
                f"Insufficient balance. Required: {format_amount(quote.from_amount, 9)} SOL, "
                f"Available: {format_amount(balance, 9)} SOL",
                params={"address": self.public_key, "required": quote.from_amount, "available": balance},
            )
        return balance

    def _latest_blockhash(self) -> Tuple[str, int]:
        resp = self.client.get_latest_blockhash(self.commitment)
        height = self.client.get_block_height(self.commitment).value
        return str(resp.value.blockhash), int(height)

    def submit(self, quote: QuoteRecord) -> SubmissionAttempt:
        if self._in_flight is not None:
            raise SubmissionFailedError(
                "A submission is already in flight for this pipeline",
                params={"signature": self._in_flight.signature},
            )

        LOGGER.info("=== Executing Swap Transaction ===")
        transaction = decode_transaction(quote.transaction_data)
        self.check_health()

        LOGGER.info("Getting recent blockhash...")
        try:
            blockhash, height = self.policy.call(self._latest_blockhash, description="blockhash fetch")
        except Exception as exc:
            raise SubmissionFailedError(
                f"Could not acquire a recent blockhash: {exc}", params={"rpc": "getLatestBlockhash"}
            ) from exc

        try:
            signed = VersionedTransaction(transaction.message, [self._keypair])
        except Exception as exc:
            raise MalformedTransactionError(
                f"Payload cannot be signed by {self.public_key}: {exc}", params={"signer": self.public_key}
            ) from exc
        signature = str(signed.signatures[0])
        raw = bytes(signed)
        opts = TxOpts(skip_preflight=False, preflight_commitment=self.commitment, max_retries=3)

        retries = []

        def _broadcast() -> str:
            try:
                resp = self.client.send_raw_transaction(raw, opts=opts)
            except Exception as exc:
                if any(marker in str(exc) for marker in ALREADY_PROCESSED_MARKERS):
                    LOGGER.info("Transaction %s was already accepted by the network", signature)
                    return signature
                raise
            return str(resp.value)

        LOGGER.info("Sending transaction...")
        try:
            sent = self.policy.call(
                _broadcast,
                description="transaction send",
                on_retry=lambda attempt, exc: retries.append(attempt),
            )
        except Exception as exc:
            raise SubmissionFailedError(
                f"Broadcast failed: {exc}", params={"signature": signature, "blockhash": blockhash}
            ) from exc

        if sent != signature:
            LOGGER.warning("RPC returned signature %s, expected %s", sent, signature)
        LOGGER.info("Transaction sent: %s", signature)

        self._in_flight = SubmissionAttempt(
            signature=signature,
            blockhash=blockhash,
            expiry_block_height=height + self.expiry_margin,
            retry_count=len(retries),
        )
        return self._in_flight


__all__ = ["TransactionSubmitter", "decode_transaction"]
