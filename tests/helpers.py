"""Polling helpers for asynchronous delivery assertions."""

import asyncio
from typing import Callable


async def eventually(assertion: Callable[[], None], timeout: float = 1.0, interval: float = 0.01) -> None:
    """Re-run assertion until it passes or timeout expires (then re-raise the last AssertionError)."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        try:
            assertion()
            return
        except AssertionError:
            if loop.time() >= deadline:
                raise
        await asyncio.sleep(interval)
