"""Route existence check against LI.FI ``/connections``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from lifiswap.core.errors import TransportError
from lifiswap.core.lifi import LiFiClient
from lifiswap.core.models import SwapRoute, TokenInfo
from lifiswap.core.utils import format_usd, get_logger, to_decimal

LOGGER = get_logger("lifiswap.routes")


@dataclass(frozen=True)
class RouteCheckResult:
    """Whether a connection exists, with token metadata for both sides when it does."""

    found: bool
    from_token: Optional[TokenInfo] = None
    to_token: Optional[TokenInfo] = None
    reason: str = ""
    rate_limited: bool = False


def _token_info(data: Mapping[str, Any]) -> TokenInfo:
    return TokenInfo(
        address=str(data.get("address", "")),
        symbol=str(data.get("symbol", "")),
        name=str(data.get("name", "")),
        decimals=int(data["decimals"]),
        price_usd=to_decimal(data.get("priceUSD"), default=None),
    )


def _log_token(label: str, token: TokenInfo) -> None:
    LOGGER.info("%s Token Details:", label)
    LOGGER.info("Symbol: %s", token.symbol)
    LOGGER.info("Name: %s", token.name)
    LOGGER.info("Decimals: %s", token.decimals)
    LOGGER.info("Price USD: %s", format_usd(token.price_usd))


class RouteValidityChecker:
    """Confirms a connection exists between two assets; never raises."""

    def __init__(self, lifi: LiFiClient) -> None:
        self.lifi = lifi

    def check(self, route: SwapRoute) -> RouteCheckResult:
        params = {
            "fromChain": route.from_chain,
            "toChain": route.to_chain,
            "fromToken": route.from_token,
            "toToken": route.to_token,
            "allowSwitchChain": "true",
            "allowDestinationCall": "true",
        }
        LOGGER.info("=== Checking Li.Fi Connection ===")
        try:
            response = self.lifi.get("connections", params)
        except TransportError as exc:
            LOGGER.error("Error checking connection: %s", exc)
            return RouteCheckResult(found=False, reason=f"transport: {exc}")

        if response.status_code == 429:
            LOGGER.warning("Rate limit exceeded while checking connection")
            LOGGER.warning("Please wait a moment before trying again")
            return RouteCheckResult(found=False, reason="rate limited", rate_limited=True)
        if not response.ok or not isinstance(response.payload, dict):
            LOGGER.error(
                "Error checking connection: HTTP error! status: %s Details: %s",
                response.status_code,
                response.text,
            )
            return RouteCheckResult(found=False, reason=f"http {response.status_code}")

        connections = response.payload.get("connections") or []
        if not connections:
            LOGGER.info("No connection found between tokens")
            return RouteCheckResult(found=False, reason="no connection found")

        try:
            if not isinstance(connections, list):
                raise TypeError(f"connections is a {type(connections).__name__}, expected a list")
            connection = connections[0]
            from_tokens = connection.get("fromTokens") or []
            to_tokens = connection.get("toTokens") or []
            from_token = _token_info(from_tokens[0]) if from_tokens else None
            to_token = _token_info(to_tokens[0]) if to_tokens else None
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            LOGGER.error("Error checking connection: unparsable token metadata: %s", exc)
            return RouteCheckResult(found=False, reason="unparsable response")

        LOGGER.info("Connection found:")
        LOGGER.info("From Chain ID: %s", connection.get("fromChainId"))
        LOGGER.info("To Chain ID: %s", connection.get("toChainId"))
        if from_token:
            _log_token("From", from_token)
        if to_token:
            _log_token("To", to_token)

        return RouteCheckResult(found=True, from_token=from_token, to_token=to_token)


__all__ = ["RouteCheckResult", "RouteValidityChecker"]
