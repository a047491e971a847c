"""Quoting utilities for Li.Fi routes."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from solders.pubkey import Pubkey
from web3 import Web3

from lifiswap.config import is_solana_chain
from lifiswap.core.errors import (
    InvalidAddressError,
    MalformedTransactionError,
    NoQuoteAvailableError,
    RateLimitedError,
    SwapError,
    TransportError,
    UnsupportedAssetError,
)
from lifiswap.core.lifi import LiFiClient, LiFiResponse
from lifiswap.core.models import FeeCost, QuoteRecord, SwapRoute, TokenInfo
from lifiswap.core.utils import format_amount, format_usd, get_logger, to_decimal

LOGGER = get_logger("lifiswap.quotes")

UNSUPPORTED_TOKEN = 1003
INVALID_ADDRESS = 1011
NO_QUOTE = 1002


def is_valid_solana_address(address: str) -> bool:
    try:
        Pubkey.from_string(address)
    except ValueError:
        return False
    return True


def validate_destination_address(chain: str, address: str) -> None:
    """Raise InvalidAddressError when ``address`` cannot receive on ``chain``."""
    if is_solana_chain(chain):
        if not is_valid_solana_address(address):
            raise InvalidAddressError(
                "Invalid Solana to address", params={"toChain": chain, "toAddress": address}
            )
        return
    if not Web3.is_address(address):
        raise InvalidAddressError(
            "Invalid EVM to address, expected 0x followed by 40 hex characters",
            params={"toChain": chain, "toAddress": address},
        )


def effective_rate(from_amount: int, from_decimals: int, to_amount: int, to_decimals: int) -> Decimal:
    """``to/from * 10^(from_decimals - to_decimals)``; logged only, never stored."""
    return Decimal(to_amount) / Decimal(from_amount) * Decimal(10) ** (from_decimals - to_decimals)


def _failed_path_reasons(errors: Mapping[str, Any]) -> List[str]:
    reasons: List[str] = []
    for path in errors.get("filteredOut") or []:
        reasons.append(str(path.get("reason", path)))
    for path in errors.get("failed") or []:
        for subpaths in (path.get("subpaths") or {}).values():
            for subpath in subpaths:
                reasons.append(str(subpath.get("message", subpath)))
    return reasons


def classify_quote_error(response: LiFiResponse, params: Mapping[str, Any]) -> SwapError:
    """Map a non-2xx ``/quote`` response onto the error taxonomy."""
    body = response.payload if isinstance(response.payload, dict) else {}
    code = body.get("code")
    message = body.get("message") or f"HTTP error! status: {response.status_code}"

    if code == UNSUPPORTED_TOKEN:
        return UnsupportedAssetError(f"Token not supported by Li.Fi: {message}", params=params)
    if code == INVALID_ADDRESS:
        return InvalidAddressError(f"Invalid address format for target chain: {message}", params=params)
    if code == NO_QUOTE:
        try:
            reasons = _failed_path_reasons(body.get("errors") or {})
        except (AttributeError, TypeError):
            reasons = []
        return NoQuoteAvailableError(f"No available quotes: {message}", params=params, reasons=reasons)
    if response.status_code == 429:
        return RateLimitedError("Rate limit exceeded", params=params)
    return TransportError(
        f"HTTP error! status: {response.status_code} Details: {response.text}", params=params
    )


def _token(data: Mapping[str, Any]) -> TokenInfo:
    return TokenInfo(
        address=str(data.get("address", "")),
        symbol=str(data.get("symbol", "")),
        name=str(data.get("name", "")),
        decimals=int(data["decimals"]),
        price_usd=to_decimal(data.get("priceUSD"), default=None),
    )


def _costs(kind: str, items: Any) -> List[FeeCost]:
    result = []
    for cost in items or []:
        token = cost.get("token") or {}
        result.append(
            FeeCost(
                kind=kind,
                amount=int(cost.get("amount", 0)),
                decimals=int(token.get("decimals", 0)),
                symbol=str(token.get("symbol", "")),
                amount_usd=to_decimal(cost.get("amountUSD")),
            )
        )
    return result


def parse_quote(data: Mapping[str, Any], route: SwapRoute, params: Mapping[str, Any]) -> QuoteRecord:
    """Build a QuoteRecord from a successful ``/quote`` body."""
    tx_data = (data.get("transactionRequest") or {}).get("data")
    if not tx_data:
        raise MalformedTransactionError("No transaction data in quote response", params=params)
    try:
        action = data["action"]
        estimate = data["estimate"]
        tool_details = data.get("toolDetails") or {}
        return QuoteRecord(
            route=route,
            from_amount=int(action["fromAmount"]),
            to_amount=int(estimate["toAmount"]),
            to_amount_min=int(estimate["toAmountMin"]),
            from_token=_token(action["fromToken"]),
            to_token=_token(action["toToken"]),
            fees=tuple(_costs("gas", estimate.get("gasCosts")) + _costs("fee", estimate.get("feeCosts"))),
            slippage=to_decimal(action.get("slippage")),
            tool=str(data.get("tool") or tool_details.get("key") or ""),
            tool_name=str(tool_details.get("name", "")),
            transaction_data=str(tx_data),
            from_address=str(params["fromAddress"]),
            to_address=str(params["toAddress"]),
            from_amount_usd=to_decimal(estimate.get("fromAmountUSD")),
            to_amount_usd=to_decimal(estimate.get("toAmountUSD")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Unexpected quote response shape: {exc}", params=params) from exc


def log_quote_details(quote: QuoteRecord) -> None:
    """Log the pre-execution view of a quote for the operator."""
    src, dst = quote.from_token, quote.to_token
    rate = effective_rate(quote.from_amount, src.decimals, quote.to_amount, dst.decimals)
    LOGGER.info("=== Li.Fi Quote Details ===")
    LOGGER.info("From: %s %s", format_amount(quote.from_amount, src.decimals), src.symbol)
    LOGGER.info("To: %s %s", format_amount(quote.to_amount, dst.decimals), dst.symbol)
    LOGGER.info("Rate: 1 %s = %.6f %s", src.symbol, rate, dst.symbol)
    LOGGER.info("USD Values: from %s to %s", format_usd(quote.from_amount_usd), format_usd(quote.to_amount_usd))
    for fee in quote.fees:
        LOGGER.info(
            "%s: %s %s (%s)",
            "Gas" if fee.kind == "gas" else "Fee",
            format_amount(fee.amount, fee.decimals),
            fee.symbol,
            format_usd(fee.amount_usd),
        )
    LOGGER.info("DEX: %s", quote.tool_name)
    LOGGER.info("Slippage: %.2f%%", quote.slippage * 100)
    LOGGER.info("Minimum Received: %s %s", format_amount(quote.to_amount_min, dst.decimals), dst.symbol)


class RouteQuoteClient:
    """Requests a priced route from LI.FI for one concrete amount."""

    def __init__(self, lifi: LiFiClient) -> None:
        self.lifi = lifi

    @staticmethod
    def build_params(route: SwapRoute, amount: int, from_address: str, to_address: str) -> Dict[str, Any]:
        return {
            "fromChain": route.from_chain,
            "toChain": route.to_chain,
            "fromToken": route.from_token,
            "toToken": route.to_token,
            "fromAmount": str(int(amount)),
            "fromAddress": from_address,
            "toAddress": to_address,
            "allowBridges": "all",
            "allowExchanges": "all",
            "order": "RECOMMENDED",
            "preferDirectBridges": "true",
        }

    def request_quote(
        self,
        route: SwapRoute,
        amount: int,
        from_address: str,
        to_address: Optional[str] = None,
    ) -> QuoteRecord:
        if int(amount) <= 0:
            raise ValueError("amount must be a positive integer in the smallest unit")
        params = self.build_params(route, amount, from_address, to_address or from_address)

        LOGGER.info("=== Requesting Li.Fi Quote ===")
        LOGGER.info("Using direct bridge preference")
        try:
            response = self.lifi.get("quote", params)
            if not response.ok:
                raise classify_quote_error(response, params)
            if not isinstance(response.payload, dict):
                raise TransportError("Non-JSON quote response", params=params)
            quote = parse_quote(response.payload, route, params)
        except SwapError as exc:
            self._log_failure(exc)
            raise

        quote.assert_amount(amount)
        log_quote_details(quote)
        return quote

    @staticmethod
    def _log_failure(exc: SwapError) -> None:
        LOGGER.error("Error fetching quote: %s", exc)
        if isinstance(exc, NoQuoteAvailableError) and exc.reasons:
            LOGGER.error("Filtered out or failed paths:")
            for reason in exc.reasons:
                LOGGER.error("- %s", reason)
        if isinstance(exc, RateLimitedError):
            LOGGER.warning("Please wait a moment before trying again")
        LOGGER.error("Failed Quote Parameters:")
        for key, value in exc.params.items():
            LOGGER.error("%s: %s", key, value)


__all__ = [
    "RouteQuoteClient",
    "classify_quote_error",
    "effective_rate",
    "log_quote_details",
    "parse_quote",
    "validate_destination_address",
]
