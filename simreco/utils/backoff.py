# simreco/utils/backoff.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar
import asyncio
import logging
import random

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """All attempts failed; `last_error` holds the final cause."""

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        super().__init__(f"{label} failed after {attempts} attempt(s): {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff with jitter, shared by every outbound client.
    delay(n) = min(max_delay, base_delay * multiplier**n) * (1 +/- jitter)
    """
    max_attempts: int = 5
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 20.0
    jitter: float = 0.25

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_s,
            multiplier=settings.retry_multiplier,
            max_delay=settings.retry_max_delay_s,
            jitter=settings.retry_jitter,
        )

    def delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """Sleep before retry number `attempt` (0-based)."""
        raw = min(self.max_delay, self.base_delay * (self.multiplier ** attempt))
        if self.jitter <= 0 or raw <= 0:
            return raw
        spread = raw * self.jitter
        r = (rng or random).uniform(-spread, spread)
        return max(0.0, raw + r)

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        *,
        retry_on: Tuple[Type[BaseException], ...],
        label: str = "call",
    ) -> T:
        """
        Await `fn()` until it succeeds or attempts run out.
        Only `retry_on` errors are retried; anything else propagates untouched.
        """
        attempts = max(1, self.max_attempts)
        for attempt in range(attempts):
            try:
                return await fn()
            except retry_on as e:
                if attempt + 1 >= attempts:
                    raise RetryExhausted(label, attempts, e) from e
                wait = self.delay(attempt)
                logger.warning(
                    f"[retry] {label} attempt={attempt + 1}/{attempts} error={type(e).__name__}: {e} "
                    f"sleep_s={wait:.2f}"
                )
                await asyncio.sleep(wait)
        raise AssertionError("unreachable")  # loop always returns or raises
