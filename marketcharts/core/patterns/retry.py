"""上游调用的指数退避重试.

Only transport-level failures are retried. Quota exhaustion, upstream error
markers and malformed payloads fail immediately so the caller can fail over.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from marketcharts.core.config import ApiConfig
from marketcharts.core.exceptions import (
    ParseError,
    QuotaExceededError,
    TransportError,
    UpstreamError,
)
from marketcharts.core.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

MAX_JITTER_SECONDS = 1.0


@dataclass(frozen=True)
class RetryConfig:
    """重试参数.

    ``jitter`` is the fraction of each delay that may be added or removed at
    random, bounded by one second.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: float = 0.1
    retry_on: tuple[type[Exception], ...] = (TransportError,)
    never_retry: tuple[type[Exception], ...] = (QuotaExceededError, UpstreamError, ParseError)

    @classmethod
    def from_api_config(cls, api_config: ApiConfig) -> "RetryConfig":
        return cls(
            max_attempts=max(1, api_config.max_retry_attempts),
            base_delay=api_config.retry_delay_ms / 1000,
        )

    def is_retryable(self, error: Exception) -> bool:
        if isinstance(error, self.never_retry):
            return False
        return isinstance(error, self.retry_on)

    def delay_for(self, retry_number: int) -> float:
        """Backoff before retry ``retry_number`` (0 for the first retry)."""
        delay = self.base_delay * self.multiplier**retry_number
        if self.jitter:
            spread = min(delay * self.jitter, MAX_JITTER_SECONDS)
            delay += random.uniform(-spread, spread)
        return max(0.0, min(delay, self.max_delay))


class ExponentialBackoffRetry:
    """Run a coroutine function, retrying transient failures with backoff.

    ``attempts`` and ``delays`` describe the most recent ``execute`` call.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep
        self.attempts = 0
        self.delays: list[float] = []

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        self.attempts = 0
        self.delays = []
        while True:
            self.attempts += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.config.is_retryable(e) or self.attempts >= self.config.max_attempts:
                    raise
                delay = self.config.delay_for(self.attempts - 1)
                logger.warning(
                    "Retrying after transient failure",
                    attempt=self.attempts,
                    max_attempts=self.config.max_attempts,
                    delay=round(delay, 3),
                    error=str(e),
                )
                self.delays.append(delay)
                await self._sleep(delay)

    @property
    def total_delay(self) -> float:
        return sum(self.delays)


__all__ = ["ExponentialBackoffRetry", "RetryConfig"]
