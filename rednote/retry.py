"""
Bounded Retry
Attempt results as values, plus a combinator that retries a failing attempt
a fixed number of times with a constant delay.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    error: BaseException


AttemptResult = Union[Ok, Err]


async def retry_bounded(
    attempt_fn: Callable[[int], Awaitable[AttemptResult]],
    *,
    max_attempts: int = 3,
    delay_s: float = 2.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "attempt",
) -> Tuple[AttemptResult, int]:
    """
    Run *attempt_fn* until it returns ``Ok`` or attempts run out.

    The delay between attempts is constant (no exponential growth) and is
    skipped after the final attempt.

    Args:
        attempt_fn: Coroutine taking the 1-based attempt number
        max_attempts: Total number of attempts (not retries)
        delay_s: Seconds to wait between attempts
        sleep: Sleep coroutine (injectable for tests)
        label: Name used in log messages

    Returns:
        ``(result, attempts_used)``: the first ``Ok`` or the last ``Err``
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    result: AttemptResult = Err(RuntimeError(f"{label} never ran"))
    for attempt in range(1, max_attempts + 1):
        logger.info(f"[RETRY] {label} {attempt}/{max_attempts}")
        result = await attempt_fn(attempt)
        if isinstance(result, Ok):
            return result, attempt

        logger.error(f"[RETRY] {label} {attempt} failed: {result.error}")
        if attempt < max_attempts:
            logger.info(f"[RETRY] Retrying {label} in {delay_s:g} seconds ({attempt}/{max_attempts})")
            await sleep(delay_s)

    return result, max_attempts
