"""
Position Reporting - Retry Policy.

============================================================
PURPOSE
============================================================
Bounded retry with exponential backoff around one async operation.

CRITICAL CONSTRAINTS:
- No infinite loops: at most max_retries + 1 attempts
- Every retry is reported with its attempt number and delay
- The last failure is re-raised unchanged, never swallowed

============================================================
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from core.exceptions import ConfigurationError

from .config import RetryConfig


logger = logging.getLogger(__name__)

T = TypeVar("T")

OnRetry = Callable[[int, float, BaseException], None]
"""Callback receiving (attempt number, delay in seconds, error)."""


class RetryPolicy:
    """
    Retry strategy shared by every report cycle.

    Delay before retry n (1-based):
        min(initial_delay * backoff_multiplier ** (n - 1), max_delay)
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        on_retry: Optional[OnRetry] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize retry policy.

        Args:
            config: Retry configuration (defaults to RetryConfig())
            on_retry: Called before each retry; defaults to a warning log
            sleep: Awaitable used to wait between attempts
        """
        self._config = config or RetryConfig()

        errors = self._config.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid retry configuration: {', '.join(errors)}",
                config_key="retry",
            )

        self._on_retry = on_retry
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def max_attempts(self) -> int:
        """Initial attempt plus retries."""
        return self._config.max_retries + 1

    def compute_delay(self, attempt: int) -> float:
        """Backoff delay in seconds before the given retry."""
        delay = self._config.initial_delay_seconds * (
            self._config.backoff_multiplier ** (attempt - 1)
        )
        return min(delay, self._config.max_delay_seconds)

    async def execute(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        operation_name: str = "operation",
        **kwargs: Any,
    ) -> T:
        """
        Run an async operation, retrying on any Exception.

        Cancellation is never retried.

        Raises:
            The exception of the last attempt once retries are exhausted.
        """
        attempt = 0

        while True:
            try:
                return await operation(*args, **kwargs)
            except Exception as e:
                attempt += 1
                if attempt > self._config.max_retries:
                    logger.debug(
                        f"[{operation_name}] Giving up after {attempt} attempts"
                    )
                    raise

                delay = self.compute_delay(attempt)
                self._report_retry(operation_name, attempt, delay, e)
                await self._sleep(delay)

    def _report_retry(
        self,
        operation_name: str,
        attempt: int,
        delay: float,
        error: BaseException,
    ) -> None:
        if self._on_retry is not None:
            self._on_retry(attempt, delay, error)
            return

        logger.warning(
            f"[{operation_name}] Retry {attempt} after {delay * 1000:.0f}ms: {error}"
        )


__all__ = ["RetryPolicy", "OnRetry"]
