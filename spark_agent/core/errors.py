"""
Spark Agent - Errors

Exception hierarchy shared by the agent, its collectors and the stream.
"""

NOT_STARTED_MESSAGE = "Collector must be started before collecting metrics"


class SparkAgentError(Exception):
    """Base class for all spark-agent errors."""


class ConfigError(SparkAgentError):
    """Raised when a configuration value fails validation."""


class DuplicateCollectorError(SparkAgentError):
    """Raised when a collector name is registered twice."""

    def __init__(self, name: str):
        super().__init__("Collector already exists")
        self.name = name


class AgentStateError(SparkAgentError):
    """Raised when an operation is not allowed in the agent's current state."""


class CollectorNotStartedError(SparkAgentError, RuntimeError):
    """Raised when a collector is queried before start() or after stop()."""

    def __init__(self, message: str = NOT_STARTED_MESSAGE):
        super().__init__(message)
