"""
Advanced modes of sleeping.
"""
import asyncio
from typing import Optional

from bcc._cogs.aiokits import aioscopes


async def sleep_or_wait(
        delay: float,
        event: Optional[asyncio.Event] = None,
) -> Optional[float]:
    """
    Measure the sleep time: either until the timeout, or until the event is set.

    Returns the number of seconds left to sleep, or ``None`` if the sleep was
    not interrupted and reached its specified delay (an equivalent of ``0``).
    In theory, the result can be ``0`` if the sleep was interrupted precisely
    the last moment before timing out; this is unlikely to happen though.
    """
    if delay < 0:
        return None
    if event is None:
        await asyncio.sleep(delay)
        return None

    loop = asyncio.get_running_loop()
    try:
        start_time = loop.time()
        await asyncio.wait_for(event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return None  # interruptable sleep is over: uninterrupted.
    else:
        end_time = loop.time()
        duration = end_time - start_time
        return max(0, delay - duration)


async def sleep(
        delay: float,
        scope: Optional[aioscopes.Scope] = None,
) -> None:
    """
    Sleep in a scope: abort as soon as the scope is cancelled or expires.

    Never sleep beyond the scope's deadline: there is no point in sleeping
    if the deadline error is going to be raised after the sleep anyway.
    """
    if scope is None:
        await sleep_or_wait(delay)
        return

    scope.check()
    remaining = scope.remaining()
    if remaining is not None:
        delay = min(delay, remaining)
    await sleep_or_wait(delay, scope.async_event)
    scope.check()
