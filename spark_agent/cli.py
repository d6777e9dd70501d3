"""
Spark Agent - Command-Line Runner

Runs the agent with the memory, CPU and event loop collectors and logs every
flushed batch as a structured JSON line.

Usage:
    spark-agent [--config CONFIG_PATH] [--interval MS] [--duration SECONDS]
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional, Sequence

import structlog

from .collectors import CpuCollector, EventLoopCollector, MemoryCollector
from .core import Agent, AgentSettings, Channels, Config, ConfigError, Metric, load_config
from .streaming import MetricsStream

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", pretty: bool = False) -> None:
    """Configure structured logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = structlog.dev.ConsoleRenderer() if pretty else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AgentRunner:
    """Wires the agent, the default collectors and a metrics stream together."""

    def __init__(self, config: Config):
        self.config = config
        self.agent = Agent(config)
        self.agent.register_collector("memory", MemoryCollector(self.agent.get_config()))
        self.agent.register_collector("cpu", CpuCollector(self.agent.get_config()))
        self.agent.register_collector("eventloop", EventLoopCollector(self.agent.get_config()))

        self.stream = MetricsStream(self.agent.get_config())
        self.stream.bind(self.agent)
        self.stream.subscribe(Channels.DATA, self._on_data)
        self.agent.subscribe(Channels.ERROR, self._on_error)

        self._shutdown_event = asyncio.Event()
        self.batches = 0

    def _on_data(self, batch: Sequence[Metric]) -> None:
        self.batches += 1
        logger.info("Metrics batch", count=len(batch), metrics=[m.to_dict() for m in batch])

    def _on_error(self, error: BaseException) -> None:
        logger.error("Collection cycle failed", error=str(error), error_type=type(error).__name__)

    def request_shutdown(self) -> None:
        """Ask :meth:`run` to stop the agent and return."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    async def run(self, duration: Optional[float] = None) -> None:
        """Start the agent and wait for shutdown or ``duration`` seconds."""
        await self.agent.start()
        logger.info("Spark agent running", collectors=list(self.agent.collectors), duration=duration)

        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=duration)
        except asyncio.TimeoutError:
            logger.info("Run duration elapsed", duration=duration)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the agent and deliver whatever is still buffered."""
        try:
            await self.agent.stop()
        finally:
            self.stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Spark in-process telemetry agent")
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file (default: $SPARK_CONFIG_PATH or spark-agent.yaml)"
    )
    parser.add_argument("--interval", type=float, default=None, help="Sample interval in milliseconds")
    parser.add_argument("--buffer-size", type=int, default=None, help="Metrics buffered before each flush")
    parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode and debug logging")
    parser.add_argument("--pretty", action="store_true", help="Human-readable console logs")
    return parser


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = AgentSettings()

    configure_logging(
        level="DEBUG" if args.debug else settings.log_level,
        pretty=args.pretty or settings.pretty_logs,
    )

    try:
        config = load_config(
            args.config or settings.config_path,
            sample_interval=args.interval,
            metrics_buffer_size=args.buffer_size,
            debug_mode=True if args.debug else None,
        )
    except ConfigError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    if config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)

    runner = AgentRunner(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, runner.request_shutdown)
        except NotImplementedError:
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(runner.request_shutdown))

    duration = args.duration if args.duration is not None else settings.duration
    try:
        await runner.run(duration=duration)
    except Exception as e:
        logger.exception("Agent failed", error=str(e))
        return 1

    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
