"""
Bounded polling with a fixed or growing interval.

Every wait in the harness (peer id discovery, baseline reads, waiting for the
write to propagate) is the same loop with a different ceiling. This module is
that loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .rpc.errors import RpcError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PollResult(Generic[T]):
    """Outcome of a polling loop."""

    value: T | None
    """Value returned by the last attempt, None if that attempt failed."""

    error: Exception | None
    """Error raised by the last attempt, None if the last attempt returned."""

    attempts: int
    """Number of attempts made."""

    accepted: bool
    """Whether the last value satisfied the acceptance check."""


async def poll(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    interval: float,
    accept: Callable[[T], bool] | None = None,
    backoff: float = 1.0,
    retry_on: tuple[type[Exception], ...] = (RpcError,),
) -> PollResult[T]:
    """
    Call an async operation until it returns an accepted value or attempts run out.

    Errors of the `retry_on` types are recorded and retried. Other errors propagate.
    No sleep happens after the final attempt.

    Args:
        operation: Zero-argument coroutine factory.
        attempts: Maximum number of calls. Must be at least 1.
        interval: Seconds to sleep before the second attempt.
        accept: Predicate a returned value must satisfy. Defaults to accepting any value.
        backoff: Factor applied to the interval after each sleep. 1.0 keeps it fixed.
        retry_on: Exception types treated as a failed attempt.

    Returns:
        The last value and last error observed.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    value: T | None = None
    error: Exception | None = None
    delay = interval

    for attempt in range(1, attempts + 1):
        try:
            value = await operation()
            error = None
        except retry_on as exc:
            value = None
            error = exc
            logger.debug("Attempt %d/%d failed: %s", attempt, attempts, exc)
        else:
            if accept is None or accept(value):
                return PollResult(value=value, error=None, attempts=attempt, accepted=True)

        if attempt < attempts:
            await asyncio.sleep(delay)
            delay *= backoff

    return PollResult(value=value, error=error, attempts=attempts, accepted=False)
