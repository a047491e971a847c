"""Wait for a broadcast transaction, and its bridge leg, to reach a terminal state."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solana.rpc.core import TransactionExpiredBlockheightExceededError, UnconfirmedTxError
from solders.signature import Signature

from lifiswap.core.errors import ConfirmationFailedError, SwapError
from lifiswap.core.lifi import LiFiClient
from lifiswap.core.models import (
    BridgeStatus,
    ConfirmationState,
    QuoteRecord,
    SubmissionAttempt,
    TransactionOutcome,
)
from lifiswap.core.utils import get_logger

LOGGER = get_logger("lifiswap.confirm")


class ConfirmationWaiter:
    def __init__(
        self,
        client: Client,
        lifi: Optional[LiFiClient] = None,
        *,
        commitment: Commitment = Commitment("confirmed"),
        poll_interval: float = 10.0,
        max_polls: int = 120,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.lifi = lifi
        self.commitment = commitment
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.sleep = sleep

    def wait(self, attempt: SubmissionAttempt) -> TransactionOutcome:
        """Block once until the signature is confirmed, fails, or expires."""
        LOGGER.info("Waiting for transaction confirmation...")
        try:
            resp = self.client.confirm_transaction(
                Signature.from_string(attempt.signature),
                self.commitment,
                last_valid_block_height=attempt.expiry_block_height,
            )
        except (TransactionExpiredBlockheightExceededError, UnconfirmedTxError) as exc:
            LOGGER.error("Transaction %s expired before confirmation: %s", attempt.signature, exc)
            return TransactionOutcome(attempt.signature, ConfirmationState.FAILED, f"expired: {exc}")

        statuses = resp.value or []
        status = statuses[0] if statuses else None
        if status is None:
            return TransactionOutcome(attempt.signature, ConfirmationState.FAILED, "signature status unavailable")
        if status.err is not None:
            LOGGER.error("Transaction failed with error: %s", status.err)
            return TransactionOutcome(attempt.signature, ConfirmationState.FAILED, status.err)
        return TransactionOutcome(attempt.signature, ConfirmationState.CONFIRMED)

    def wait_for_bridge(self, quote: QuoteRecord, signature: str) -> BridgeStatus:
        """Poll LI.FI ``/status`` until DONE or FAILED, at most ``max_polls`` times."""
        if self.lifi is None:
            raise ValueError("a LiFiClient is required to follow cross-chain transfers")
        params: Dict[str, Any] = {
            "bridge": quote.tool,
            "fromChain": quote.route.from_chain,
            "toChain": quote.route.to_chain,
            "txHash": signature,
        }
        last: Optional[BridgeStatus] = None
        for poll in range(1, self.max_polls + 1):
            try:
                last = self.lifi.get_status(
                    bridge=quote.tool,
                    from_chain=quote.route.from_chain,
                    to_chain=quote.route.to_chain,
                    tx_hash=signature,
                )
            except SwapError as exc:
                LOGGER.warning("Status check %s/%s failed: %s", poll, self.max_polls, exc)
            else:
                LOGGER.info("Transfer status: %s", last.status)
                if last.status == "DONE":
                    return last
                if last.status == "FAILED":
                    raise ConfirmationFailedError(
                        "Bridge transfer failed", params=params, on_chain_error=last.substatus
                    )
            if poll < self.max_polls:
                self.sleep(self.poll_interval)

        raise ConfirmationFailedError(
            f"Bridge transfer did not reach a terminal status after {self.max_polls} polls",
            params=params,
            on_chain_error=last.status if last else None,
        )


__all__ = ["ConfirmationWaiter"]
