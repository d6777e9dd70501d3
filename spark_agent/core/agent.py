"""
Spark Agent - Agent

Coordinates the registered collectors: starts and stops them in order, runs
the fixed-interval collection cycle and publishes each batch on the
``metrics`` channel, or the failure on the ``error`` channel.
"""

import asyncio
import time
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import structlog

from .collector import Collector
from .config import Config
from .errors import AgentStateError, DuplicateCollectorError
from .events import Channels, EventEmitter
from .metric import Metric, coerce_metric
from .timer import IntervalTimer

logger = structlog.get_logger(__name__)


class Agent(EventEmitter):
    """Drives periodic collection across all registered collectors.

    Example::

        agent = Agent({"sampleInterval": 1000})
        agent.register_collector("memory", MemoryCollector(agent.get_config()))
        agent.subscribe(Channels.METRICS, print)
        await agent.start()

    Events:
        metrics: tuple of Metric from one cycle, in registration order
        error: the exception that aborted a cycle
    """

    def __init__(self, config: Union[Config, Mapping[str, Any], None] = None):
        super().__init__()
        self._config = config if isinstance(config, Config) else Config.create(config)
        self._collectors: Dict[str, Collector] = {}
        self._running = False
        self._timer: Optional[IntervalTimer] = None
        # Serializes start/stop so overlapping calls cannot arm two timers
        self._lifecycle_lock = asyncio.Lock()
        self._cycles = 0
        self._failed_cycles = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def collectors(self) -> Tuple[str, ...]:
        """Registered collector names in registration order."""
        return tuple(self._collectors)

    def get_config(self) -> Config:
        """Return the agent's configuration (immutable)."""
        return self._config

    def get_collector(self, name: str) -> Optional[Collector]:
        return self._collectors.get(name)

    def get_stats(self) -> Mapping[str, Any]:
        """Get agent status counters."""
        return MappingProxyType({
            "running": self._running,
            "collectors": list(self._collectors),
            "cycles": self._cycles,
            "failed_cycles": self._failed_cycles,
        })

    def register_collector(self, name: str, collector: Collector) -> None:
        """Register ``collector`` under a unique ``name``."""
        if name in self._collectors:
            raise DuplicateCollectorError(name)
        if self._running:
            raise AgentStateError("Cannot register collectors while the agent is running")

        self._collectors[name] = collector
        logger.debug("Collector registered", collector=name)

    async def start(self) -> None:
        """Start every collector, then begin the collection cycle.

        If a collector fails to start, the error propagates and the agent
        stays stopped. Collectors started before the failure are not rolled
        back.
        """
        async with self._lifecycle_lock:
            if self._running:
                return

            if not self._config.enabled:
                logger.info("Agent disabled by configuration, not starting")
                return

            if self._timer is not None:
                raise AgentStateError("Collection timer is already armed")

            logger.info("Starting agent", collectors=list(self._collectors),
                        sample_interval=self._config.sample_interval)

            for name, collector in self._collectors.items():
                try:
                    await collector.start()
                    logger.debug("Collector started", collector=name)
                except Exception as e:
                    logger.error("Failed to start collector", collector=name, error=str(e))
                    raise

            self._running = True
            self._timer = IntervalTimer(
                self._config.sample_interval_seconds,
                self._run_cycle,
                name="spark-agent-collection",
            )
            self._timer.start()

            logger.info("Agent started")

    async def stop(self) -> None:
        """Stop the collection cycle and every collector.

        All collectors get a stop attempt even if an earlier one fails; the
        first failure is re-raised once the agent is marked stopped.
        """
        async with self._lifecycle_lock:
            if not self._running:
                return

            logger.info("Stopping agent")

            if self._timer:
                self._timer.cancel()
                await self._timer.wait_closed()
                self._timer = None

            first_error: Optional[BaseException] = None
            for name, collector in self._collectors.items():
                try:
                    await collector.stop()
                    logger.debug("Collector stopped", collector=name)
                except Exception as e:
                    logger.exception("Error stopping collector", collector=name, error=str(e))
                    if first_error is None:
                        first_error = e

            self._running = False
            logger.info("Agent stopped", cycles=self._cycles, failed_cycles=self._failed_cycles)

            if first_error is not None:
                raise first_error

    async def _run_cycle(self) -> None:
        """Collect from every collector and publish one batch or one error."""
        start_time = time.monotonic()
        batch: List[Metric] = []
        current = None

        try:
            for current, collector in self._collectors.items():
                for item in await collector.collect():
                    batch.append(coerce_metric(item))
        except Exception as e:
            self._failed_cycles += 1
            logger.debug("Collection cycle failed", collector=current, error=str(e))
            if not self.publish(Channels.ERROR, e):
                logger.error("Collection error", collector=current, error=str(e))
            return

        self._cycles += 1
        duration_ms = round((time.monotonic() - start_time) * 1000, 3)
        log = logger.info if self._config.debug_mode else logger.debug
        log("Collection cycle complete", count=len(batch), duration_ms=duration_ms)

        self.publish(Channels.METRICS, tuple(batch))
