"""
Spark Agent - Base Collector Interface

All collectors implement start/stop/collect so the agent can drive them
without knowing what they measure.
"""

from abc import ABC, abstractmethod
from typing import List

from .config import Config
from .errors import CollectorNotStartedError
from .metric import Metric


class Collector(ABC):
    """Capability every collector exposes to the agent."""

    @abstractmethod
    async def start(self) -> None:
        """Establish baseline state. Calling it while running is a no-op."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Release state and return to the pre-start condition. Idempotent."""
        pass

    @abstractmethod
    async def collect(self) -> List[Metric]:
        """Return the current metrics.

        Raises CollectorNotStartedError when the collector is not running.
        """
        pass


class BaseCollector(Collector):
    """Collector with the running flag and state checks already in place.

    Subclasses implement ``_setup``, ``_teardown`` and ``_sample``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return

        # A failing _setup leaves the collector stopped
        await self._setup()
        self._running = True

    async def stop(self) -> None:
        if not self._running:
            return

        try:
            await self._teardown()
        finally:
            self._running = False

    async def collect(self) -> List[Metric]:
        if not self._running:
            raise CollectorNotStartedError()

        return list(await self._sample())

    async def _setup(self) -> None:
        """Initialize collector state. Override in subclass if needed."""
        pass

    async def _teardown(self) -> None:
        """Release collector state. Override in subclass if needed."""
        pass

    @abstractmethod
    async def _sample(self) -> List[Metric]:
        """Take one measurement."""
        pass
