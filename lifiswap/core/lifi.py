"""Thin HTTP client for the LI.FI REST API."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import requests

from lifiswap.config import SwapConfig
from lifiswap.core.errors import RateLimitedError, TransportError
from lifiswap.core.models import BridgeStatus
from lifiswap.core.utils import get_logger

LOGGER = get_logger("lifiswap.lifi")


class LiFiResponse:
    """Status code plus decoded JSON body (``None`` when the body is not JSON)."""

    def __init__(self, status_code: int, payload: Any, text: str) -> None:
        self.status_code = status_code
        self.payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class LiFiClient:
    """Shared by the route checker, the quote client and the bridge status poller."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str],
        timeout: float,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if api_key:
            self.session.headers["x-api-key"] = api_key

    @classmethod
    def from_config(cls, config: SwapConfig, api_key: Optional[str], **kwargs: Any) -> "LiFiClient":
        return cls(
            base_url=config.api_urls.lifi_base,
            api_key=api_key,
            timeout=config.defaults.api_timeout,
            **kwargs,
        )

    def get(self, path: str, params: Mapping[str, Any]) -> LiFiResponse:
        """GET ``path``; raise TransportError only when no HTTP response arrived."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.get(url, params=dict(params), timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"Failed to reach {url}: {exc}", params=params) from exc
        try:
            payload = response.json()
        except ValueError:
            payload = None
        return LiFiResponse(response.status_code, payload, response.text)

    def get_json(self, path: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """GET ``path`` and return the JSON body, raising on any non-2xx answer."""
        response = self.get(path, params)
        if response.status_code == 429:
            raise RateLimitedError("LI.FI rate limit exceeded", params=params)
        if not response.ok:
            raise TransportError(
                f"HTTP error! status: {response.status_code} Details: {response.text}", params=params
            )
        if not isinstance(response.payload, dict):
            raise TransportError(f"Non-JSON response from {path}", params=params)
        return response.payload

    def get_status(self, *, bridge: str, from_chain: Any, to_chain: Any, tx_hash: str) -> BridgeStatus:
        """Fetch the cross-chain transfer status for ``tx_hash``."""
        params = {"bridge": bridge, "fromChain": from_chain, "toChain": to_chain, "txHash": tx_hash}
        data = self.get_json("status", params)
        receiving = data.get("receiving") or {}
        return BridgeStatus(
            status=str(data.get("status", "UNKNOWN")),
            substatus=data.get("substatus"),
            receiving_tx_hash=receiving.get("txHash"),
        )


__all__ = ["LiFiClient", "LiFiResponse"]
