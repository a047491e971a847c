"""Sequential retry policy shared by blockhash acquisition and broadcast."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from lifiswap.core.utils import get_logger

LOGGER = get_logger("lifiswap.retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """At most ``max_attempts`` tries, sleeping ``delay * backoff**(n-1)`` in between."""

    max_attempts: int = 3
    delay: float = 1.0
    backoff: float = 1.0
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must be non-negative")

    def call(self, fn: Callable[[], T], *, description: str = "operation",
             on_retry: Optional[Callable[[int, BaseException], None]] = None) -> T:
        """Run ``fn`` until it succeeds; re-raise the error of the final attempt."""
        attempt = 1
        while True:
            try:
                return fn()
            except self.retry_on as exc:
                if attempt >= self.max_attempts:
                    LOGGER.error("%s failed after %s attempts: %s", description, attempt, exc)
                    raise
                LOGGER.warning("%s failed: %s", description, exc)
                LOGGER.info("Retrying %s... (%s/%s)", description, attempt, self.max_attempts)
                if on_retry is not None:
                    on_retry(attempt, exc)
                self.sleep(self.delay * self.backoff ** (attempt - 1))
                attempt += 1


__all__ = ["RetryPolicy"]
