"""The quote, submit, confirm and reconcile pipeline."""

from __future__ import annotations

import enum
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solders.keypair import Keypair

from lifiswap.config import SwapConfig
from lifiswap.core.confirm import ConfirmationWaiter
from lifiswap.core.errors import ConfirmationFailedError, SwapError
from lifiswap.core.lifi import LiFiClient
from lifiswap.core.models import (
    BridgeStatus,
    QuoteRecord,
    ReconciliationReport,
    SubmissionAttempt,
    SwapRoute,
    TransactionOutcome,
)
from lifiswap.core.quotes import RouteQuoteClient, validate_destination_address
from lifiswap.core.reconcile import SwapReconciler
from lifiswap.core.retry import RetryPolicy
from lifiswap.core.routes import RouteCheckResult, RouteValidityChecker
from lifiswap.core.submit import TransactionSubmitter, decode_transaction
from lifiswap.core.utils import (
    attach_audit_log,
    banner,
    detach_audit_log,
    format_amount,
    format_usd,
    get_logger,
    solscan_url,
)

LOGGER = get_logger("lifiswap.pipeline")


class PipelineStatus(str, enum.Enum):
    COMPLETED = "completed"
    HALTED = "halted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SwapOptions:
    """Everything that varies between runs of the pipeline."""

    route: SwapRoute
    amount: int
    to_address: Optional[str] = None
    confirm: Optional[Callable[[QuoteRecord], bool]] = None
    log_sink: Optional[logging.Handler] = None
    check_route: bool = True
    reconcile: bool = True
    check_balance: bool = True


@dataclass(frozen=True)
class PipelineResult:
    status: PipelineStatus
    route_check: Optional[RouteCheckResult] = None
    quote: Optional[QuoteRecord] = None
    attempt: Optional[SubmissionAttempt] = None
    outcome: Optional[TransactionOutcome] = None
    bridge_status: Optional[BridgeStatus] = None
    report: Optional[ReconciliationReport] = None


def describe_quote(quote: QuoteRecord) -> str:
    """Human summary shown at the confirmation gate."""
    route = quote.route
    return (
        "WARNING: You are about to perform a cross-chain swap:\n"
        f"From: {format_amount(quote.from_amount, quote.from_decimals)} {quote.from_token.symbol} ({route.from_chain})\n"
        f"To: {format_amount(quote.to_amount, quote.to_decimals)} {quote.to_token.symbol} ({route.to_chain})\n"
        f"Target Address: {quote.to_address}\n"
        f"DEX: {quote.tool_name}\n"
        f"Slippage: {quote.slippage * 100:.2f}%\n"
        f"Estimated Fees: {format_usd(quote.total_fee_usd)}"
    )


class SwapPipeline:
    """Runs one swap at a time against explicitly supplied clients and key."""

    def __init__(
        self,
        *,
        config: SwapConfig,
        lifi: LiFiClient,
        rpc: Client,
        keypair: Keypair,
        reconciler: Optional[SwapReconciler] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        defaults = config.defaults
        commitment = Commitment(defaults.commitment)
        self.config = config
        self.checker = RouteValidityChecker(lifi)
        self.quotes = RouteQuoteClient(lifi)
        self.submitter = TransactionSubmitter(
            rpc,
            keypair,
            policy=RetryPolicy(max_attempts=defaults.retry_attempts, delay=defaults.retry_delay, sleep=sleep),
            expiry_margin=defaults.expiry_margin,
            commitment=commitment,
        )
        self.waiter = ConfirmationWaiter(
            rpc,
            lifi,
            commitment=commitment,
            poll_interval=defaults.bridge_poll_interval,
            max_polls=defaults.bridge_max_polls,
            sleep=sleep,
        )
        self.reconciler = reconciler

    @property
    def address(self) -> str:
        return self.submitter.public_key

    def quote_only(self, route: SwapRoute, amount: int, to_address: Optional[str] = None) -> QuoteRecord:
        """Validate and price a route without signing anything."""
        to_address = to_address or self.address
        validate_destination_address(route.to_chain, to_address)
        return self.quotes.request_quote(route, amount, self.address, to_address)

    def run(self, options: SwapOptions) -> PipelineResult:
        attach_audit_log(options.log_sink)
        try:
            return self._run(options)
        except SwapError as exc:
            LOGGER.error("Error in run: %s", exc.describe())
            banner(LOGGER, "SWAP FAILED")
            raise
        except Exception as exc:
            LOGGER.exception("Error in run: %s", exc)
            banner(LOGGER, "SWAP FAILED")
            raise
        finally:
            self.submitter.release()
            detach_audit_log(options.log_sink)

    def _run(self, options: SwapOptions) -> PipelineResult:
        route = options.route
        to_address = options.to_address or self.address
        banner(LOGGER, "NEW SWAP REQUEST")
        LOGGER.info("=== Starting Cross-Chain Swap Process ===")
        LOGGER.info(
            "Swap Parameters: %s",
            json.dumps({**asdict(route), "amount": str(options.amount), "fromAddress": self.address,
                        "toAddress": to_address}, indent=2),
        )

        validate_destination_address(route.to_chain, to_address)

        check = None
        if options.check_route:
            check = self.checker.check(route)
            if not check.found:
                LOGGER.warning("No connection found between tokens")
                LOGGER.warning("Please verify token addresses and try again")
                return PipelineResult(status=PipelineStatus.HALTED, route_check=check)

        quote = self.quotes.request_quote(route, options.amount, self.address, to_address)
        quote.assert_amount(options.amount)

        if options.confirm is not None and not options.confirm(quote):
            LOGGER.info("Transaction cancelled by user")
            return PipelineResult(status=PipelineStatus.CANCELLED, route_check=check, quote=quote)

        decode_transaction(quote.transaction_data)
        if options.check_balance:
            self.submitter.check_balance(quote)
        attempt = self.submitter.submit(quote)
        outcome = self.waiter.wait(attempt)
        if not outcome.confirmed:
            raise ConfirmationFailedError(
                f"Transaction failed: {outcome.on_chain_error}",
                params={"signature": attempt.signature, "blockhash": attempt.blockhash},
                on_chain_error=outcome.on_chain_error,
            )
        LOGGER.info("Transaction confirmed: %s", attempt.signature)

        bridge_status = None
        if route.is_cross_chain:
            bridge_status = self.waiter.wait_for_bridge(quote, attempt.signature)
        self.submitter.release()

        report = None
        if options.reconcile and self.reconciler is not None:
            report = self.reconciler.reconcile(attempt.signature, quote)

        LOGGER.info("Transaction signature: %s", attempt.signature)
        LOGGER.info("Solscan link: %s", solscan_url(attempt.signature))
        banner(LOGGER, "SWAP COMPLETED")
        return PipelineResult(
            status=PipelineStatus.COMPLETED,
            route_check=check,
            quote=quote,
            attempt=attempt,
            outcome=outcome,
            bridge_status=bridge_status,
            report=report,
        )


__all__ = ["PipelineResult", "PipelineStatus", "SwapOptions", "SwapPipeline", "describe_quote"]
