"""Pacing and bounded retry for rate-limited upstreams."""

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable
from functools import cache
from typing import Any, TypeVar

from .config import Config, get_config
from .consts import (
    MAX_ATTEMPTS,
    MIN_REQUEST_INTERVAL_SECONDS,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)
from .exceptions import RateLimitExceeded

logger = logging.getLogger("mcp-bridge.pacer")

T = TypeVar("T")

RATE_LIMIT_STATUS = 429
RATE_LIMIT_CODE = "rate_limited"
RATE_LIMIT_PHRASES = ("rate limit", "too many requests")


def _structured_signal(error: BaseException) -> int | str | None:
    """Return the first status/code field found on an error, if any."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value

    code = getattr(error, "code", None)
    if isinstance(code, (int, str)):
        return code
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    """Decide whether an error is a transient rate-limit failure.

    A structured status or code field decides on its own. Only errors that
    carry none fall back to matching phrases in the message, and that path
    is logged so drift in upstream wording stays visible.
    """
    signal = _structured_signal(error)
    if signal is not None:
        return signal in (RATE_LIMIT_STATUS, RATE_LIMIT_CODE)

    text = str(error).lower()
    if any(phrase in text for phrase in RATE_LIMIT_PHRASES):
        logger.warning(
            f"Classified {type(error).__name__} as rate limited by message match"
        )
        return True
    return False


class Pacer:
    """Enforces a minimum interval between calls and retries rate limiting.

    One instance owns the "last call" timestamp; share the instance across
    callers that hit the same upstream.

    Responsibilities:
    - Space call starts at least ``min_interval`` seconds apart
    - Retry rate-limited calls with exponential backoff
    - Give up with RateLimitExceeded after ``max_attempts``
    """

    def __init__(
        self,
        min_interval: float = MIN_REQUEST_INTERVAL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        max_delay: float = RETRY_MAX_DELAY_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.min_interval = min_interval
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    @classmethod
    def from_config(cls, config: Config) -> "Pacer":
        return cls(
            min_interval=config.min_request_interval,
            max_attempts=config.max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
        )

    def retry_delay(self, attempt: int) -> float:
        """Backoff before retrying after failed ``attempt`` (1-based)."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    async def wait_turn(self) -> None:
        """Suspend until the minimum interval since the last call has passed."""
        async with self._lock:
            if self._last_call is not None:
                remaining = self.min_interval - (self._clock() - self._last_call)
                if remaining > 0:
                    logger.debug(f"Pacing for {remaining:.3f}s")
                    await self._sleep(remaining)
            self._last_call = self._clock()

    async def run(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        operation: str = "call",
        timeout: float | None = None,
        **kwargs: Any,
    ) -> T:
        """Run ``fn`` paced, retrying rate-limit failures.

        Args:
            fn: Coroutine function to call.
            *args: Positional arguments for fn.
            operation: Name used in logs and errors.
            timeout: Overall deadline in seconds for all attempts.
            **kwargs: Keyword arguments for fn.

        Returns:
            Whatever fn returns.

        Raises:
            RateLimitExceeded: If every attempt was rate limited, or the
                next backoff would overrun the deadline.
            TimeoutError: If the deadline elapses mid-call.
            Exception: Any non-rate-limit error from fn, unchanged.
        """
        async with asyncio.timeout(timeout) as deadline:
            for attempt in range(1, self.max_attempts + 1):
                await self.wait_turn()
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:
                    if not is_rate_limit_error(e):
                        raise
                    if attempt == self.max_attempts:
                        logger.error(
                            f"Rate limit exceeded for {operation} after {attempt} attempts"
                        )
                        raise RateLimitExceeded(
                            f"Rate limit exceeded for {operation}: {e}",
                            errors=[str(e)],
                            suggestions=["Wait before retrying this operation"],
                            context={"operation": operation, "attempts": attempt},
                            cause=e,
                        ) from e

                    delay = self.retry_delay(attempt)
                    when = deadline.when()
                    if when is not None:
                        loop_now = asyncio.get_running_loop().time()
                        if loop_now + delay >= when:
                            raise RateLimitExceeded(
                                f"Rate limit for {operation} outlasts the deadline",
                                errors=[str(e)],
                                suggestions=["Allow a longer timeout or retry later"],
                                context={
                                    "operation": operation,
                                    "attempts": attempt,
                                    "timeout": timeout,
                                },
                                cause=e,
                            ) from e

                    logger.warning(
                        f"Rate limit hit for {operation} "
                        f"(attempt {attempt}/{self.max_attempts}), retrying in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                else:
                    if attempt > 1:
                        logger.info(f"{operation} succeeded after {attempt} attempts")
                    return result

    def wrap(
        self, fn: Callable[..., Awaitable[T]], operation: str | None = None
    ) -> Callable[..., Awaitable[T]]:
        """Return a paced version of ``fn``."""
        name = operation or fn.__name__

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await self.run(fn, *args, operation=name, **kwargs)

        return wrapper


@cache
def get_pacer() -> Pacer:
    """Get the process-wide Pacer built from the cached config."""
    return Pacer.from_config(get_config())
