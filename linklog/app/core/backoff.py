"""Backoff utilities.

`exponential_backoff` yields the current delay for the caller to attempt an operation,
then sleeps for that delay before the next attempt. Used for connecting to backing services.

`jittered_delay` picks a random pause inside a window. Writers that collided on the same
revision sleep a different amount each, so their next conditional writes do not line up again.
"""
import asyncio
import random
from typing import AsyncIterator


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[float]:
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        yield delay
        if attempt < max_attempts:
            delay = min(delay * multiplier, max_delay)
            await asyncio.sleep(delay)


def jittered_delay(min_delay: float, max_delay: float) -> float:
    if max_delay <= min_delay:
        return max(min_delay, 0.0)
    return random.uniform(min_delay, max_delay)


async def sleep_jittered(min_delay: float, max_delay: float) -> float:
    delay = jittered_delay(min_delay, max_delay)
    if delay > 0:
        await asyncio.sleep(delay)
    return delay
