"""Core domain logic for lifiswap."""

from .confirm import ConfirmationWaiter
from .lifi import LiFiClient
from .pipeline import PipelineResult, PipelineStatus, SwapOptions, SwapPipeline
from .quotes import RouteQuoteClient, validate_destination_address
from .reconcile import SwapReconciler
from .retry import RetryPolicy
from .routes import RouteCheckResult, RouteValidityChecker
from .submit import TransactionSubmitter

__all__ = [
    "ConfirmationWaiter",
    "LiFiClient",
    "PipelineResult",
    "PipelineStatus",
    "RetryPolicy",
    "RouteCheckResult",
    "RouteQuoteClient",
    "RouteValidityChecker",
    "SwapOptions",
    "SwapPipeline",
    "SwapReconciler",
    "TransactionSubmitter",
    "validate_destination_address",
]
