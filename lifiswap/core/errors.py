"""Error taxonomy for the quote, submit, confirm and reconcile pipeline."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional


class SwapError(Exception):
    """Base error carrying the request context that produced it."""

    kind = "swap"

    def __init__(self, message: str, *, params: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.params: Dict[str, Any] = dict(params or {})

    def describe(self) -> str:
        """Return the message followed by one ``key: value`` line per parameter."""
        lines = [f"[{self.kind}] {self}"]
        lines.extend(f"  {key}: {value}" for key, value in self.params.items())
        return "\n".join(lines)


class TransportError(SwapError):
    """Network or HTTP failure talking to an external service."""

    kind = "transport"


class RateLimitedError(TransportError):
    """The provider answered with HTTP 429."""

    kind = "rate_limited"


class UnsupportedAssetError(SwapError):
    """No viable route exists for one of the assets."""

    kind = "unsupported_asset"


class InvalidAddressError(SwapError):
    """An address is malformed for the chain it targets."""

    kind = "invalid_address"


class NoQuoteAvailableError(SwapError):
    """A route exists but no priced path is available at this size."""

    kind = "no_quote_available"

    def __init__(
        self,
        message: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        reasons: Iterable[str] = (),
    ) -> None:
        super().__init__(message, params=params)
        self.reasons = list(reasons)

    def describe(self) -> str:
        text = super().describe()
        if self.reasons:
            text += "\n" + "\n".join(f"  - {reason}" for reason in self.reasons)
        return text


class MalformedTransactionError(SwapError):
    """The quoted payload is missing or cannot be deserialized."""

    kind = "malformed_transaction"


class SubmissionFailedError(SwapError):
    """Blockhash acquisition or broadcast failed for good."""

    kind = "submission_failed"


class InsufficientFundsError(SubmissionFailedError):
    """The signer cannot cover the quoted input amount."""

    kind = "insufficient_funds"


class ConfirmationFailedError(SwapError):
    """The transaction or its bridge leg reached a failed terminal state."""

    kind = "confirmation_failed"

    def __init__(
        self,
        message: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        on_chain_error: Any = None,
    ) -> None:
        super().__init__(message, params=params)
        self.on_chain_error = on_chain_error


class ReconciliationIncomplete(SwapError):
    """Explorer data was insufficient to compare quote and result."""

    kind = "reconciliation_incomplete"


class QuoteMismatchError(ValueError):
    """A quote was reused for an amount it was not requested with."""


__all__ = [
    "ConfirmationFailedError",
    "InsufficientFundsError",
    "InvalidAddressError",
    "MalformedTransactionError",
    "NoQuoteAvailableError",
    "QuoteMismatchError",
    "RateLimitedError",
    "ReconciliationIncomplete",
    "SubmissionFailedError",
    "SwapError",
    "TransportError",
    "UnsupportedAssetError",
]
