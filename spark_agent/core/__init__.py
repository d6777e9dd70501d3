"""
Spark Agent - Core Package

- Agent: drives periodic collection across registered collectors
- Config: frozen, validated configuration
- Metric: immutable measurement value
- Collector / BaseCollector: capability every collector implements
- EventEmitter: named publish/subscribe channels
"""

from .agent import Agent
from .collector import BaseCollector, Collector
from .config import AgentSettings, Config, load_config
from .errors import (
    AgentStateError,
    CollectorNotStartedError,
    ConfigError,
    DuplicateCollectorError,
    NOT_STARTED_MESSAGE,
    SparkAgentError,
)
from .events import Channels, EventEmitter, Subscription
from .metric import Metric, MetricType, coerce_metric, now_ms
from .timer import IntervalTimer

__all__ = [
    "Agent",
    "AgentSettings",
    "AgentStateError",
    "BaseCollector",
    "Channels",
    "Collector",
    "CollectorNotStartedError",
    "Config",
    "ConfigError",
    "DuplicateCollectorError",
    "EventEmitter",
    "IntervalTimer",
    "Metric",
    "MetricType",
    "NOT_STARTED_MESSAGE",
    "SparkAgentError",
    "Subscription",
    "coerce_metric",
    "load_config",
    "now_ms",
]
