"""
Spark Agent - Memory Collector

Reports process memory usage and a moving-average growth rate over the
most recent RSS snapshots.
"""

from collections import deque
from typing import Deque, List, Optional

import psutil
import structlog

from ..core.collector import BaseCollector
from ..core.config import Config
from ..core.metric import Metric, MetricType, now_ms

logger = structlog.get_logger(__name__)

# Snapshots used for the growth-rate average
GROWTH_WINDOW = 5
# Growth above this per snapshot marks memory as "warning"
GROWTH_WARNING_BYTES = 100 * 1024


class MemoryCollector(BaseCollector):
    """Collects RSS, VMS, memory percent and RSS growth rate."""

    def __init__(self, config: Config, process: Optional[psutil.Process] = None):
        super().__init__(config)
        self._process = process or psutil.Process()
        self._snapshots: Deque[int] = deque(maxlen=config.max_memory_snapshots)

    @property
    def snapshots(self) -> List[int]:
        return list(self._snapshots)

    async def _setup(self) -> None:
        self._snapshots.clear()
        # Fail start() early if the process cannot be inspected
        self._process.memory_info()
        logger.debug("Memory collector started", max_snapshots=self.config.max_memory_snapshots)

    async def _teardown(self) -> None:
        self._snapshots.clear()

    async def _sample(self) -> List[Metric]:
        info = self._process.memory_info()
        percent = self._process.memory_percent()
        ts = now_ms()

        self._snapshots.append(info.rss)
        growth_rate = self._growth_rate()

        return [
            Metric(
                name="memory.rss",
                value=info.rss,
                timestamp=ts,
                type=MetricType.MEMORY,
                metadata={"unit": "bytes", "status": self._status(growth_rate)},
            ),
            Metric(
                name="memory.vms",
                value=info.vms,
                timestamp=ts,
                type=MetricType.MEMORY,
                metadata={"unit": "bytes"},
            ),
            Metric(
                name="memory.percent",
                value=round(percent, 3),
                timestamp=ts,
                type=MetricType.MEMORY,
                metadata={"unit": "percent"},
            ),
            Metric(
                name="memory.growth_rate",
                value=growth_rate,
                timestamp=ts,
                type=MetricType.MEMORY,
                metadata={"unit": "bytes/snapshot", "snapshots": len(self._snapshots)},
            ),
        ]

    def _growth_rate(self) -> float:
        """Average RSS change between consecutive recent snapshots."""
        recent = list(self._snapshots)[-GROWTH_WINDOW:]
        if len(recent) < 2:
            return 0.0

        total = sum(b - a for a, b in zip(recent, recent[1:]))
        return total / (len(recent) - 1)

    @staticmethod
    def _status(growth_rate: float) -> str:
        return "warning" if growth_rate > GROWTH_WARNING_BYTES else "normal"
