"""Utility helpers shared across lifiswap core modules."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

AUDIT_FORMAT = "[%(asctime)s] %(message)s"
BANNER_WIDTH = 100


def get_logger(name: str = "lifiswap") -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def open_audit_log(path: Path, header: str) -> logging.FileHandler:
    """Create an append-only audit handler, writing ``header`` to new files."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_text(f"{header}\n{'=' * 50}\n", encoding="utf-8")
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(AUDIT_FORMAT))
    return handler


def attach_audit_log(handler: Optional[logging.Handler], name: str = "lifiswap") -> None:
    """Route every ``lifiswap.*`` record into ``handler`` as well."""
    if handler is None:
        return
    logger = logging.getLogger(name)
    if handler not in logger.handlers:
        logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)


def detach_audit_log(handler: Optional[logging.Handler], name: str = "lifiswap") -> None:
    if handler is None:
        return
    logging.getLogger(name).removeHandler(handler)
    handler.close()


def banner(logger: logging.Logger, label: str) -> None:
    """Log ``label`` framed by full-width separator lines."""
    logger.info("=" * BANNER_WIDTH)
    logger.info(label)
    logger.info("=" * BANNER_WIDTH)


def format_amount(amount: int, decimals: int) -> str:
    """Render a smallest-unit integer with exactly ``decimals`` fractional digits."""
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    if int(amount) < 0:
        raise ValueError("amount must be non-negative")
    whole, frac = divmod(int(amount), 10**decimals)
    if not decimals:
        return str(whole)
    return f"{whole}.{frac:0{decimals}d}"


def parse_amount(text: str, decimals: int) -> int:
    """Convert a decimal string back to its smallest-unit integer."""
    whole, _, frac = str(text).strip().partition(".")
    frac = frac.rstrip("0")
    if not whole.isdigit() or (frac and not frac.isdigit()):
        raise ValueError(f"Invalid amount: {text!r}")
    if len(frac) > decimals:
        raise ValueError(f"Amount {text} has more than {decimals} decimal places")
    return int(whole) * 10**decimals + int(frac.ljust(decimals, "0") or "0")


def parse_raw_amount(text: str) -> int:
    """Parse a user-supplied smallest-unit amount; it must be a positive integer."""
    cleaned = str(text).strip().lstrip("0") or "0"
    if not cleaned.isdigit():
        raise ValueError(f"Invalid amount: {text!r} must be a positive integer")
    amount = int(cleaned)
    if amount <= 0:
        raise ValueError("Invalid amount: must be a positive number")
    return amount


def to_decimal(value: Any, default: Decimal = Decimal(0)) -> Decimal:
    """Coerce API numbers and strings to Decimal, falling back to ``default``."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


def format_usd(value: Any) -> str:
    return f"${to_decimal(value):.2f}"


def solscan_url(signature: str) -> str:
    return f"https://solscan.io/tx/{signature}"


def explorer_url(signature: str) -> str:
    return f"https://explorer.solana.com/tx/{signature}"


__all__ = [
    "attach_audit_log",
    "banner",
    "detach_audit_log",
    "explorer_url",
    "format_amount",
    "format_usd",
    "get_logger",
    "open_audit_log",
    "parse_amount",
    "parse_raw_amount",
    "solscan_url",
    "to_decimal",
]
