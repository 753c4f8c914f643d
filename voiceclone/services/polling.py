"""Sequential status polling shared by cloning jobs and avatar animations."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollLimitReached(Exception):
    """Raised when an opt-in attempt cap is exhausted before a terminal state."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"No terminal state after {attempts} status checks")


async def poll_until_terminal(
    check: Callable[[], Awaitable[T]],
    is_terminal: Callable[[T], bool],
    interval: float = 2.0,
    on_update: Optional[Callable[[T], None]] = None,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``check`` every ``interval`` seconds until ``is_terminal`` holds.

    Each check completes before the next sleep starts, so there is never
    more than one request in flight. Errors raised by ``check`` stop the
    loop and propagate. ``max_attempts=None`` polls without limit.
    """
    attempts = 0
    while True:
        result = await check()
        attempts += 1
        if on_update is not None:
            on_update(result)
        if is_terminal(result):
            logger.debug(f"Terminal state reached after {attempts} checks")
            return result
        if max_attempts is not None and attempts >= max_attempts:
            raise PollLimitReached(attempts)
        await sleep(interval)
