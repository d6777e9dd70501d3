"""
Spark Agent - Event Loop Collector

Measures asyncio scheduling lag: a probe task sleeps for a short resolution
and records how late it wakes up.
"""

import asyncio
from typing import List, Optional

import structlog

from ..core.collector import BaseCollector
from ..core.config import Config
from ..core.metric import Metric, MetricType, now_ms

logger = structlog.get_logger(__name__)


class EventLoopCollector(BaseCollector):
    """Collects ``eventloop.lag``, the worst lag seen since the last collect."""

    def __init__(self, config: Config, resolution: float = 0.01):
        super().__init__(config)
        self._resolution = resolution
        self._probe_task: Optional[asyncio.Task] = None
        self._expected: Optional[float] = None
        self._max_lag = 0.0
        self._samples = 0

    async def _setup(self) -> None:
        loop = asyncio.get_running_loop()
        self._max_lag = 0.0
        self._samples = 0
        self._expected = None
        self._probe_task = loop.create_task(self._probe(), name="spark-eventloop-probe")
        logger.debug("Event loop collector started", resolution=self._resolution)

    async def _teardown(self) -> None:
        if self._probe_task:
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass
            self._probe_task = None
        self._expected = None

    async def _probe(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            self._expected = loop.time() + self._resolution
            await asyncio.sleep(self._resolution)
            lag = max(0.0, (loop.time() - self._expected) * 1000)
            self._max_lag = max(self._max_lag, lag)
            self._samples += 1

    async def _sample(self) -> List[Metric]:
        lag = self._max_lag
        # The probe may be overdue right now if the loop was just blocked
        if self._expected is not None:
            pending = (asyncio.get_running_loop().time() - self._expected) * 1000
            lag = max(lag, pending)

        samples = self._samples
        self._max_lag = 0.0
        self._samples = 0

        threshold = self.config.event_loop_threshold
        return [
            Metric(
                name="eventloop.lag",
                value=round(lag, 3),
                timestamp=now_ms(),
                type=MetricType.EVENTLOOP,
                metadata={
                    "unit": "milliseconds",
                    "threshold": threshold,
                    "status": "warning" if lag > threshold else "normal",
                    "samples": samples,
                },
            )
        ]
