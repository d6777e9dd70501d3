"""
Spark Agent - Metric Model

Immutable metric value object shared by collectors, the agent and the stream.
"""

import copy
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Union

MetricValue = Union[int, float, str, Mapping[str, Any], Sequence[Any]]


class MetricType(str, Enum):
    """Metric category."""
    MEMORY = "memory"
    CPU = "cpu"
    EVENTLOOP = "eventloop"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def freeze(value: Any) -> Any:
    """Return a deep, read-only copy of ``value``.

    Mappings become mapping proxies, lists and tuples become tuples, sets
    become frozensets. Scalars are returned as-is.
    """
    if isinstance(value, (str, bytes, int, float, bool, type(None), Enum)):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(item) for item in value)
    return copy.deepcopy(value)


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain JSON-friendly containers."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    if isinstance(value, frozenset):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class Metric:
    """A single timestamped measurement.

    ``value`` and ``metadata`` are deep-copied and frozen on construction, so
    later changes to the caller's containers never reach the metric. Metrics
    compare by value but are unhashable, since frozen metadata is a mapping.
    """
    name: str                   # category.measurement, e.g. memory.rss
    value: MetricValue
    timestamp: int              # ms since epoch
    type: MetricType
    metadata: Optional[Mapping[str, Any]] = None

    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self):
        object.__setattr__(self, "type", MetricType(self.type))
        object.__setattr__(self, "value", freeze(self.value))
        if self.metadata is not None:
            object.__setattr__(self, "metadata", freeze(self.metadata))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metric":
        """Build a Metric from a plain mapping."""
        for key in ("name", "value", "type"):
            if key not in data:
                raise ValueError(f"Metric is missing required field: {key}")

        timestamp = data.get("timestamp")
        return cls(
            name=data["name"],
            value=data["value"],
            timestamp=now_ms() if timestamp is None else timestamp,
            type=data["type"],
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "value": thaw(self.value),
            "timestamp": self.timestamp,
            "type": self.type.value,
            "metadata": thaw(self.metadata) if self.metadata is not None else None,
        }


def coerce_metric(item: Union[Metric, Mapping[str, Any]]) -> Metric:
    """Return ``item`` as an immutable Metric."""
    if isinstance(item, Metric):
        return item
    if isinstance(item, Mapping):
        return Metric.from_dict(item)
    raise TypeError(f"Expected Metric or mapping, got {type(item).__name__}")
