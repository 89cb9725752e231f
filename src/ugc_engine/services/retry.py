"""Bounded exponential backoff around provider calls."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from ugc_engine.config import Settings, get_settings
from ugc_engine.errors import ProviderError, RetryExhaustedError
from ugc_engine.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry transient provider failures on a doubling schedule.

    Only `ProviderError`s whose kind is transient are retried. Anything
    else, including permanent provider errors and upload errors, propagates
    on the first occurrence.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 8.0
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "RetryPolicy":
        config = config or get_settings()
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            multiplier=config.retry_multiplier,
            max_delay=config.retry_max_delay,
        )

    def delay_for(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay before the attempt following `attempt` (1-based)."""
        delay = self.base_delay * self.multiplier ** (attempt - 1)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return min(delay, self.max_delay)

    def delays(self) -> list[float]:
        """The full backoff schedule when every attempt fails without hints."""
        return [self.delay_for(n) for n in range(1, self.max_attempts)]

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str = "operation",
        **log_context: Any,
    ) -> T:
        """Await `operation()` until it succeeds or the budget is spent.

        Raises:
            RetryExhaustedError: A transient failure persisted for every attempt
            ProviderError: A permanent provider failure (not retried)
        """
        last_error: ProviderError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except ProviderError as e:
                if not e.is_transient:
                    logger.warning(
                        "retry_permanent_failure",
                        operation=operation_name,
                        attempt=attempt,
                        kind=str(e.kind),
                        error=e.message,
                        **log_context,
                    )
                    raise
                last_error = e

                if attempt == self.max_attempts:
                    break

                delay = self.delay_for(attempt, e.retry_after)
                logger.info(
                    "retry_scheduled",
                    operation=operation_name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    kind=str(e.kind),
                    delay=delay,
                    **log_context,
                )
                await self.sleep(delay)

        if last_error is None:
            raise ValueError("max_attempts must be at least 1")
        logger.warning(
            "retry_exhausted",
            operation=operation_name,
            attempts=self.max_attempts,
            error=last_error.message,
            **log_context,
        )
        raise RetryExhaustedError(last_error, self.max_attempts)
