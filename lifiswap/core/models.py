"""Immutable records passed between pipeline stages."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from lifiswap.core.errors import QuoteMismatchError


def normalized_rate(from_amount: int, from_decimals: int, to_amount: int, to_decimals: int) -> Decimal:
    """Return ``(to/10^to_decimals) / (from/10^from_decimals)`` as a Decimal."""
    if from_amount <= 0:
        raise ValueError("from_amount must be positive to compute a rate")
    to_units = Decimal(to_amount).scaleb(-to_decimals)
    from_units = Decimal(from_amount).scaleb(-from_decimals)
    return to_units / from_units


@dataclass(frozen=True)
class SwapRoute:
    """Source and destination asset pair, each on its own chain."""

    from_chain: str
    to_chain: str
    from_token: str
    to_token: str

    @property
    def is_cross_chain(self) -> bool:
        return str(self.from_chain).lower() != str(self.to_chain).lower()


@dataclass(frozen=True)
class TokenInfo:
    """Token metadata as reported by LI.FI."""

    address: str
    symbol: str
    decimals: int
    name: str = ""
    price_usd: Optional[Decimal] = None


@dataclass(frozen=True)
class FeeCost:
    """One gas or fee line item of a quote."""

    kind: str
    amount: int
    decimals: int
    symbol: str
    amount_usd: Decimal


@dataclass(frozen=True)
class QuoteRecord:
    """Priced route for one concrete input amount."""

    route: SwapRoute
    from_amount: int
    to_amount: int
    to_amount_min: int
    from_token: TokenInfo
    to_token: TokenInfo
    fees: Tuple[FeeCost, ...]
    slippage: Decimal
    tool: str
    tool_name: str
    transaction_data: str
    from_address: str
    to_address: str
    from_amount_usd: Decimal = Decimal(0)
    to_amount_usd: Decimal = Decimal(0)

    @property
    def from_decimals(self) -> int:
        return self.from_token.decimals

    @property
    def to_decimals(self) -> int:
        return self.to_token.decimals

    @property
    def quoted_rate(self) -> Decimal:
        """Output per unit of input, both sides scaled by their own decimals."""
        return normalized_rate(self.from_amount, self.from_decimals, self.to_amount, self.to_decimals)

    @property
    def raw_rate(self) -> Decimal:
        """Smallest-unit output per smallest-unit input."""
        return Decimal(self.to_amount) / Decimal(self.from_amount)

    @property
    def total_fee_usd(self) -> Decimal:
        return sum((fee.amount_usd for fee in self.fees if fee.kind == "fee"), Decimal(0))

    def assert_amount(self, amount: int) -> None:
        """Raise if this quote is reused for a different input amount."""
        if int(amount) != self.from_amount:
            raise QuoteMismatchError(
                f"Quote was requested for {self.from_amount} but is being used for {amount}"
            )


@dataclass(frozen=True)
class SubmissionAttempt:
    """The single broadcast in flight for a pipeline run."""

    signature: str
    blockhash: str
    expiry_block_height: int
    retry_count: int = 0


class ConfirmationState(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


@dataclass(frozen=True)
class TransactionOutcome:
    signature: str
    state: ConfirmationState
    on_chain_error: Any = None

    @property
    def confirmed(self) -> bool:
        return self.state is ConfirmationState.CONFIRMED


@dataclass(frozen=True)
class BridgeStatus:
    """Cross-chain transfer status as reported by LI.FI ``/status``."""

    status: str
    substatus: Optional[str] = None
    receiving_tx_hash: Optional[str] = None

    TERMINAL = ("DONE", "FAILED")

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL


@dataclass(frozen=True)
class TransferLeg:
    sender: str
    receiver: str
    amount: int
    token_address: str


class ReconciliationStatus(str, enum.Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    NO_SWAP_ACTION = "no_swap_action"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ReconciliationReport:
    """Quoted versus realized transfer comparison for a finalized swap."""

    signature: str
    status: ReconciliationStatus
    note: str = ""
    quoted_rate: Optional[Decimal] = None
    actual_rate: Optional[Decimal] = None
    deviation_percent: Optional[Decimal] = None
    input_transfer: Optional[TransferLeg] = None
    output_transfer: Optional[TransferLeg] = None
    swapper: Optional[str] = None
    timestamp: Optional[str] = None
    network_fee: Optional[Any] = None
    swap_details: Dict[str, Any] = field(default_factory=dict, compare=False)
    raw: Any = field(default=None, repr=False, compare=False)


__all__ = [
    "BridgeStatus",
    "ConfirmationState",
    "FeeCost",
    "QuoteRecord",
    "ReconciliationReport",
    "ReconciliationStatus",
    "SubmissionAttempt",
    "SwapRoute",
    "TokenInfo",
    "TransactionOutcome",
    "TransferLeg",
    "normalized_rate",
]
