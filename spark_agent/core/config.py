"""
Spark Agent - Configuration

Frozen, validated agent configuration plus the YAML/environment loaders
used by the command-line runner.
"""

from pathlib import Path
from typing import Any, Mapping, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

logger = structlog.get_logger(__name__)


def _alias(key: str) -> str:
    """Map a snake_case field name to its alias; camelCase keys pass through."""
    return to_camel(key) if "_" in key else key


class Config(BaseModel):
    """Agent configuration.

    Constructed once, validated at construction and never mutated afterwards.
    Fields accept both their snake_case names and camelCase aliases::

        Config(sample_interval=1000)
        Config(sampleInterval=1000)
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )

    # Interval between collection cycles (ms)
    sample_interval: float = 5000
    enabled: bool = True
    # RSS samples kept for growth-rate estimation
    max_memory_snapshots: int = 10
    # Minimum CPU sampling window (ms)
    cpu_profiling_duration: float = 500
    # Event loop lag above this is reported as a warning (ms)
    event_loop_threshold: float = 100
    # Buffered metrics before MetricsStream flushes
    metrics_buffer_size: int = 1000
    debug_mode: bool = False

    @field_validator(
        "sample_interval",
        "max_memory_snapshots",
        "cpu_profiling_duration",
        "event_loop_threshold",
        "metrics_buffer_size",
    )
    @classmethod
    def _must_be_positive(cls, value: float, info: ValidationInfo) -> float:
        if not value > 0:
            raise ConfigError(f"{to_camel(info.field_name)} must be greater than 0")
        return value

    @property
    def sample_interval_seconds(self) -> float:
        return self.sample_interval / 1000

    @classmethod
    def create(cls, values: Optional[Mapping[str, Any]] = None) -> "Config":
        """Validate ``values`` and build a Config, raising ConfigError on failure."""
        try:
            return cls(**dict(values or {}))
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "config"
            raise ConfigError(f"{field}: {error['msg']}") from e

    def replace(self, **changes: Any) -> "Config":
        """Return a new validated Config with ``changes`` applied."""
        values = self.model_dump(by_alias=True)
        for key, value in changes.items():
            values[_alias(key)] = value
        return Config.create(values)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class AgentSettings(BaseSettings):
    """Runner settings loaded from the environment (``SPARK_*``) and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="SPARK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: str = "spark-agent.yaml"
    log_level: str = "INFO"
    pretty_logs: bool = False
    # Run for this many seconds then exit; None runs until signalled
    duration: Optional[float] = None


def load_config(path: Union[str, Path], **overrides: Any) -> Config:
    """Load configuration from a YAML file.

    The file may hold the fields at top level or under an ``agent:`` key.
    Overrides that are not None take precedence over file values.
    """
    path = Path(path)
    data: Any = {}

    if not path.exists():
        logger.warning("Config file not found, using defaults", path=str(path))
    else:
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        logger.info("Configuration loaded", path=str(path))

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    section = data.get("agent", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'agent' section in {path} must be a mapping")

    values = {_alias(key): value for key, value in section.items()}
    for key, value in overrides.items():
        if value is not None:
            values[_alias(key)] = value

    return Config.create(values)
