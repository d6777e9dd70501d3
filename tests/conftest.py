"""
Spark Agent - Test fixtures
"""

import asyncio

import pytest


@pytest.fixture
def wait_until():
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""

    async def _wait(predicate, timeout: float = 2.0, interval: float = 0.005) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()

    return _wait
