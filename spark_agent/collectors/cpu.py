"""
Spark Agent - CPU Collector

Reports user and system CPU utilisation of the current process since the
previous sample, normalised by CPU count.
"""

import asyncio
import time
from typing import List, Optional

import psutil
import structlog

from ..core.collector import BaseCollector
from ..core.config import Config
from ..core.metric import Metric, MetricType, now_ms

logger = structlog.get_logger(__name__)


class CpuCollector(BaseCollector):
    """Collects ``cpu.user`` and ``cpu.system`` percentages."""

    def __init__(self, config: Config, process: Optional[psutil.Process] = None):
        super().__init__(config)
        self._process = process or psutil.Process()
        self._cpu_count = psutil.cpu_count() or 1
        self._last_usage = None
        self._last_timestamp: Optional[float] = None

    async def _setup(self) -> None:
        self._reset_baseline()
        logger.debug("CPU collector started", cpus=self._cpu_count)

    async def _teardown(self) -> None:
        self._last_usage = None
        self._last_timestamp = None

    async def _sample(self) -> List[Metric]:
        # Sample over at least cpu_profiling_duration
        window = self.config.cpu_profiling_duration / 1000
        elapsed = time.monotonic() - self._last_timestamp
        if elapsed < window:
            await asyncio.sleep(window - elapsed)

        usage = self._process.cpu_times()
        elapsed = time.monotonic() - self._last_timestamp
        user = self._percent(usage.user - self._last_usage.user, elapsed)
        system = self._percent(usage.system - self._last_usage.system, elapsed)
        ts = now_ms()

        self._reset_baseline()

        metadata = {
            "unit": "percent",
            "duration": self.config.cpu_profiling_duration,
            "elapsed_ms": round(elapsed * 1000, 3),
        }
        return [
            Metric(name="cpu.user", value=user, timestamp=ts, type=MetricType.CPU, metadata=metadata),
            Metric(name="cpu.system", value=system, timestamp=ts, type=MetricType.CPU, metadata=metadata),
        ]

    def _reset_baseline(self) -> None:
        self._last_usage = self._process.cpu_times()
        self._last_timestamp = time.monotonic()

    def _percent(self, cpu_seconds: float, elapsed: float) -> float:
        if elapsed <= 0:
            return 0.0
        pct = cpu_seconds / elapsed * 100 / self._cpu_count
        return round(min(100.0, max(0.0, pct)), 3)
