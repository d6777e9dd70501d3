"""
Spark Agent - Metrics Stream

Buffers metrics and hands them downstream in batches on the ``data`` channel,
either when the buffer reaches ``metrics_buffer_size`` or on an explicit
flush.
"""

import threading
from typing import Any, Iterable, List, Mapping, Union

import structlog

from ..core.config import Config
from ..core.events import Channels, EventEmitter, Subscription
from ..core.metric import Metric, coerce_metric

logger = structlog.get_logger(__name__)


class MetricsStream(EventEmitter):
    """Buffered metrics stream.

    Example::

        stream = MetricsStream(Config(metrics_buffer_size=100))
        stream.subscribe(Channels.DATA, ship)
        stream.bind(agent)

    Events:
        data: tuple of Metric in insertion order
    """

    def __init__(self, config: Config):
        super().__init__()
        self.config = config
        self._batch_size = config.metrics_buffer_size
        self._buffer: List[Metric] = []
        self._lock = threading.RLock()

    @property
    def pending(self) -> int:
        """Number of buffered metrics."""
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def push(self, metrics: Iterable[Union[Metric, Mapping[str, Any]]]) -> None:
        """Append frozen copies of ``metrics`` to the buffer.

        Flushes once before returning if the buffer has reached capacity.
        """
        items = [coerce_metric(metric) for metric in metrics]

        with self._lock:
            self._buffer.extend(items)

            # Flush if batch is full
            if len(self._buffer) >= self._batch_size:
                self.flush()

    def flush(self) -> None:
        """Publish the whole buffer as one ``data`` event and empty it.

        Does nothing when the buffer is empty.
        """
        with self._lock:
            if not self._buffer:
                return

            batch = tuple(self._buffer)
            self._buffer.clear()

            logger.debug("Flushed metrics batch", count=len(batch))
            self.publish(Channels.DATA, batch)

    def clear(self) -> None:
        """Drop buffered metrics without publishing them."""
        with self._lock:
            dropped = len(self._buffer)
            self._buffer.clear()

        if dropped:
            logger.debug("Cleared metrics buffer", dropped=dropped)

    def bind(self, source: EventEmitter) -> Subscription:
        """Feed every batch ``source`` publishes on ``metrics`` into this stream."""
        return source.subscribe(Channels.METRICS, self.push)
