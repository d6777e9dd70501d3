"""
Spark Agent

In-process telemetry agent: polls pluggable collectors for runtime health
metrics at a fixed interval and publishes the batches to subscribers, with
an optional buffering stage for downstream delivery.
"""

from .collectors import CpuCollector, EventLoopCollector, MemoryCollector
from .core import (
    Agent,
    BaseCollector,
    Channels,
    Collector,
    CollectorNotStartedError,
    Config,
    ConfigError,
    DuplicateCollectorError,
    Metric,
    MetricType,
    load_config,
)
from .streaming import MetricsStream

__version__ = "1.0.0"

__all__ = [
    "Agent",
    "BaseCollector",
    "Channels",
    "Collector",
    "CollectorNotStartedError",
    "Config",
    "ConfigError",
    "CpuCollector",
    "DuplicateCollectorError",
    "EventLoopCollector",
    "MemoryCollector",
    "Metric",
    "MetricType",
    "MetricsStream",
    "load_config",
]
