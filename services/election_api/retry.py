"""Bounded retry of read-modify-write cycles that lose a version race."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from prometheus_client import Counter
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from .errors import RetriesExhaustedError, VersionConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 3
RETRY_BACKOFF_SECONDS = 0.1

cas_conflicts = Counter(
    "cas_conflicts_total",
    "Total number of conditional writes that lost a version race",
    ["operation"]
)
cas_exhausted = Counter(
    "cas_retries_exhausted_total",
    "Total number of operations abandoned after exhausting retries",
    ["operation"]
)


class CasRetryCoordinator:
    """
    Run a unit of work, re-running it when a conditional write conflicts.

    The unit must perform its own reads, so each attempt acts on fresh
    state and never reuses a version token from a failed attempt. Only
    ``VersionConflictError`` is retried; every other exception propagates
    on the first occurrence.
    """

    def __init__(
        self,
        max_retries: int = MAX_RETRIES,
        backoff_seconds: float = RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _retrying(self, operation: str) -> AsyncRetrying:
        def record_conflict(retry_state: RetryCallState) -> None:
            cas_conflicts.labels(operation=operation).inc()
            logger.warning(
                f"Retry {retry_state.attempt_number}/{self.max_retries} for {operation}: "
                f"{retry_state.outcome.exception()}"
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            # linear: 1x, 2x, 3x ... the base delay
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception_type(VersionConflictError),
            after=record_conflict,
            sleep=self._sleep,
        )

    async def run(
        self,
        unit: Callable[[], Awaitable[T]],
        operation: str,
        exhausted_message: Optional[str] = None,
    ) -> T:
        """
        Execute ``unit`` up to ``max_retries`` times.

        Args:
            unit: Coroutine function performing one read-modify-write cycle
            operation: Short description used in logs, metrics and errors
            exhausted_message: Message for the error raised on exhaustion

        Returns:
            Whatever the first non-conflicting attempt returns.

        Raises:
            RetriesExhaustedError: Every attempt raised VersionConflictError.
        """
        try:
            return await self._retrying(operation)(unit)
        except RetryError as e:
            cas_exhausted.labels(operation=operation).inc()
            logger.error(f"Giving up on {operation} after {self.max_retries} conflicting attempts")
            raise RetriesExhaustedError(
                operation, self.max_retries, exhausted_message
            ) from e.last_attempt.exception()
