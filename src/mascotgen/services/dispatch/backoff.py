"""Retry loop with per-attempt timeout and exponential backoff.

Retry classification:
    - Attempt timed out → retryable
    - ProviderError with retryable=True → retryable
    - Anything else → fatal, raised immediately

Delay before attempt N+1: base_delay * 2^(N-1) + uniform jitter in [0, max_jitter].
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

import structlog

from mascotgen.services.exceptions import ProviderError, ProviderTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
JitterFn = Callable[[float, float], float]


class AttemptOutcome(str, Enum):
    """Classified result of one attempt."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class RetryAttempt:
    """Record of one execution attempt."""

    attempt: int
    delay_before: float  # seconds slept before this attempt
    outcome: AttemptOutcome
    error: BaseException | None = None


def is_retryable(error: BaseException) -> bool:
    """Return retry classification for an attempt failure."""
    if isinstance(error, ProviderError):
        return error.retryable
    return isinstance(error, asyncio.TimeoutError)


class BackoffExecutor:
    """Runs a fallible async operation with bounded retries."""

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        per_attempt_timeout: float = 120.0,
        max_jitter: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
        random_fn: JitterFn = random.uniform,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay < 0 or max_jitter < 0:
            raise ValueError("delays must be >= 0")
        if per_attempt_timeout <= 0:
            raise ValueError("per_attempt_timeout must be > 0")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.per_attempt_timeout = per_attempt_timeout
        self.max_jitter = max_jitter
        self._sleep = sleep
        self._random = random_fn

    def compute_delay(self, attempt: int, base_delay: float | None = None) -> float:
        """Delay to wait after failed attempt ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        base = self.base_delay if base_delay is None else base_delay
        jitter = self._random(0.0, self.max_jitter) if self.max_jitter > 0 else 0.0
        return base * (2 ** (attempt - 1)) + jitter

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        per_attempt_timeout: float | None = None,
        on_attempt: Callable[[RetryAttempt], None] | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds, fails fatally, or attempts run out.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            max_attempts: Attempt ceiling (defaults to executor setting)
            base_delay: First backoff delay in seconds (defaults to executor setting)
            per_attempt_timeout: Seconds each attempt may take (defaults to executor setting)
            on_attempt: Optional callback receiving a RetryAttempt per attempt

        Returns:
            Result of the first successful attempt

        Raises:
            ProviderTimeoutError: Last attempt timed out
            ProviderError: Fatal provider error, or retryable error on the last attempt
            Exception: Any other error raised by ``operation`` (fatal)
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        timeout = self.per_attempt_timeout if per_attempt_timeout is None else per_attempt_timeout
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        delay_before = 0.0
        for attempt in range(1, attempts + 1):
            started = time.monotonic()
            try:
                result = await asyncio.wait_for(operation(), timeout=timeout)
            except asyncio.TimeoutError as e:
                error: BaseException = ProviderTimeoutError(
                    f"Attempt {attempt} timed out after {timeout:g}s"
                )
                error.__cause__ = e
            except Exception as e:
                error = e
            else:
                record = RetryAttempt(attempt, delay_before, AttemptOutcome.SUCCESS)
                if on_attempt is not None:
                    on_attempt(record)
                logger.info(
                    "backoff.attempt_succeeded",
                    attempt=attempt,
                    duration_seconds=round(time.monotonic() - started, 3),
                )
                return result

            retryable = is_retryable(error)
            outcome = AttemptOutcome.RETRYABLE if retryable else AttemptOutcome.FATAL
            if on_attempt is not None:
                on_attempt(RetryAttempt(attempt, delay_before, outcome, error))

            if not retryable or attempt == attempts:
                logger.warning(
                    "backoff.gave_up",
                    attempt=attempt,
                    max_attempts=attempts,
                    outcome=outcome.value,
                    error_type=type(error).__name__,
                    error_message=str(error),
                )
                raise error

            delay_before = self.compute_delay(attempt, base_delay)
            logger.warning(
                "backoff.attempt_failed",
                attempt=attempt,
                max_attempts=attempts,
                retry_in_seconds=round(delay_before, 3),
                error_type=type(error).__name__,
                error_message=str(error),
            )
            await self._sleep(delay_before)

        # Unreachable: the loop either returns or raises
        raise RuntimeError("backoff loop exited without a result")
