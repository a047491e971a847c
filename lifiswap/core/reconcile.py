"""Post-hoc comparison of quoted versus realized swap amounts."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

import requests

from lifiswap.core.errors import ReconciliationIncomplete, TransportError
from lifiswap.core.models import (
    QuoteRecord,
    ReconciliationReport,
    ReconciliationStatus,
    TransferLeg,
    normalized_rate,
)
from lifiswap.core.utils import explorer_url, format_amount, get_logger, solscan_url, to_decimal

LOGGER = get_logger("lifiswap.reconcile")

NO_SWAP_NOTE = "No swap action found in transaction"
SWAP_DETAIL_FIELDS = (
    ("slippage_in_percent", "Slippage"),
    ("quoted_out_amount", "Quoted Out Amount"),
    ("slippage_paid", "Slippage Paid"),
)


def _units(value: Any) -> int:
    amount = to_decimal(value, default=None)
    if amount is None or amount < 0 or amount != amount.to_integral_value():
        raise ReconciliationIncomplete(f"Transfer amount is not a smallest-unit integer: {value!r}")
    return int(amount)


def _leg(action: Mapping[str, Any]) -> TransferLeg:
    info = action.get("info") or {}
    return TransferLeg(
        sender=str(info.get("sender", "")),
        receiver=str(info.get("receiver", "")),
        amount=_units(info.get("amount")),
        token_address=str(info.get("token_address", "")),
    )


def _find_transfer(actions: Iterable[Mapping[str, Any]], field: str, swapper: str) -> Optional[TransferLeg]:
    for action in actions:
        if action.get("type") == "TOKEN_TRANSFER" and (action.get("info") or {}).get(field) == swapper:
            return _leg(action)
    return None


def build_report(signature: str, result: Mapping[str, Any], quote: Optional[QuoteRecord]) -> ReconciliationReport:
    """Locate the swap and its transfer legs in a parsed transaction and compare."""
    actions = list(result.get("actions") or [])
    base: Dict[str, Any] = {
        "signature": signature,
        "timestamp": result.get("timestamp"),
        "network_fee": result.get("fee"),
        "raw": result,
    }

    swap = next((action for action in actions if action.get("type") == "SWAP"), None)
    if swap is None:
        return ReconciliationReport(status=ReconciliationStatus.NO_SWAP_ACTION, note=NO_SWAP_NOTE, **base)

    info = swap.get("info") or {}
    swapper = str(info.get("swapper", ""))
    details = {key: info[key] for key, _ in SWAP_DETAIL_FIELDS if info.get(key) is not None}
    input_leg = _find_transfer(actions, "sender", swapper)
    output_leg = _find_transfer(actions, "receiver", swapper)
    base.update(swapper=swapper, swap_details=details, input_transfer=input_leg, output_transfer=output_leg)

    if input_leg is None or output_leg is None:
        missing = "input" if input_leg is None else "output"
        return ReconciliationReport(
            status=ReconciliationStatus.PARTIAL,
            note=f"No {missing} transfer for swapper {swapper}; comparison skipped",
            **base,
        )
    if quote is None:
        return ReconciliationReport(
            status=ReconciliationStatus.PARTIAL, note="No quote to compare against", **base
        )
    if input_leg.amount == 0:
        raise ReconciliationIncomplete("Input transfer amount is zero")

    quoted = quote.quoted_rate
    actual = normalized_rate(input_leg.amount, quote.from_decimals, output_leg.amount, quote.to_decimals)
    deviation = (actual - quoted) / quoted * Decimal(100)
    return ReconciliationReport(
        status=ReconciliationStatus.COMPLETE,
        quoted_rate=quoted,
        actual_rate=actual,
        deviation_percent=deviation,
        **base,
    )


class SwapReconciler:
    """Fetches the parsed transaction from Shyft and reconciles it against a quote.

    Every failure is logged and folded into the report; nothing propagates,
    because by this stage the transfer has already finalized on-chain.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str],
        timeout: float,
        network: str = "mainnet-beta",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.network = network
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self.session.headers["x-api-key"] = api_key

    def fetch(self, signature: str) -> Dict[str, Any]:
        url = f"{self.base_url}/transaction/parsed"
        params = {"network": self.network, "txn_signature": signature}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"Shyft API unreachable: {exc}", params=params) from exc
        if not response.ok:
            raise TransportError(f"Shyft API error: {response.status_code} - {response.text}", params=params)
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("Shyft API returned non-JSON body", params=params) from exc
        if not data.get("success"):
            raise TransportError(f"Shyft API error: {data.get('message') or 'Unknown error'}", params=params)
        return data.get("result") or {}

    def reconcile(self, signature: str, quote: Optional[QuoteRecord] = None) -> ReconciliationReport:
        LOGGER.info("=== Analyzing Swap Transaction: %s ===", signature)
        try:
            result = self.fetch(signature)
            report = build_report(signature, result, quote)
        except Exception as exc:
            LOGGER.error("Error analyzing transaction: %s", exc)
            report = ReconciliationReport(
                signature=signature, status=ReconciliationStatus.UNAVAILABLE, note=str(exc)
            )
        self._log_report(report, quote)
        return report

    @staticmethod
    def _log_report(report: ReconciliationReport, quote: Optional[QuoteRecord]) -> None:
        if report.status is not ReconciliationStatus.UNAVAILABLE:
            raw = report.raw or {}
            LOGGER.info("Transaction Details:")
            LOGGER.info("Time: %s", report.timestamp)
            LOGGER.info("Status: %s", raw.get("status"))
            LOGGER.info("Network Fee: %s SOL", report.network_fee)
        if report.note:
            LOGGER.info(report.note)
        if report.swapper:
            LOGGER.info("Swapper: %s", report.swapper)
        for key, label in SWAP_DETAIL_FIELDS:
            if key in report.swap_details:
                LOGGER.info("%s: %s", label, report.swap_details[key])

        src, dst = report.input_transfer, report.output_transfer
        if src and dst:
            if quote is not None:
                from_sym, to_sym = quote.from_token.symbol, quote.to_token.symbol
                LOGGER.info("Input: %s %s", format_amount(src.amount, quote.from_decimals), from_sym)
                LOGGER.info("Output: %s %s", format_amount(dst.amount, quote.to_decimals), to_sym)
            else:
                LOGGER.info("Input: %s %s", src.amount, src.token_address)
                LOGGER.info("Output: %s %s", dst.amount, dst.token_address)

        if report.status is ReconciliationStatus.COMPLETE and quote is not None:
            LOGGER.info("=== Quote vs Actual Comparison ===")
            LOGGER.info(
                "Input: quote %s actual %s",
                format_amount(quote.from_amount, quote.from_decimals),
                format_amount(src.amount, quote.from_decimals),
            )
            LOGGER.info(
                "Output: quote %s actual %s",
                format_amount(quote.to_amount, quote.to_decimals),
                format_amount(dst.amount, quote.to_decimals),
            )
            LOGGER.info("Quote Rate: 1 %s = %.6f %s", quote.from_token.symbol, report.quoted_rate, quote.to_token.symbol)
            LOGGER.info("Actual Rate: 1 %s = %.6f %s", quote.from_token.symbol, report.actual_rate, quote.to_token.symbol)
            LOGGER.info("Difference: %.2f%%", report.deviation_percent)

        LOGGER.info("Transaction Links:")
        LOGGER.info("Solscan: %s", solscan_url(report.signature))
        LOGGER.info("Explorer: %s", explorer_url(report.signature))


__all__ = ["NO_SWAP_NOTE", "SwapReconciler", "build_report"]
