"""
Spark Agent - MetricsStream Tests

Buffering, auto-flush at capacity, manual flush/clear and copy isolation.
"""

import threading

import pytest

from spark_agent.core.config import Config
from spark_agent.core.events import Channels
from spark_agent.core.metric import Metric, MetricType, now_ms
from spark_agent.streaming.stream import MetricsStream


def create_metric(name: str, value: float) -> Metric:
    return Metric(
        name=name,
        value=value,
        timestamp=now_ms(),
        type=MetricType.MEMORY,
        metadata={"unit": "bytes"},
    )


@pytest.fixture
def stream():
    return MetricsStream(Config(metrics_buffer_size=3))


@pytest.fixture
def batches(stream):
    received = []
    stream.subscribe(Channels.DATA, received.append)
    return received


class TestBuffering:
    """Test accumulation and automatic flushing."""

    def test_flushes_at_capacity(self, stream, batches):
        """Test three single pushes produce exactly one batch of three."""
        first = create_metric("test.metric1", 100)
        second = create_metric("test.metric2", 200)
        third = create_metric("test.metric3", 300)

        stream.push([first])
        stream.push([second])
        assert batches == []
        assert stream.pending == 2

        stream.push([third])

        assert len(batches) == 1
        assert list(batches[0]) == [first, second, third]
        assert stream.pending == 0

    def test_separate_pushes_split_into_batches(self, stream, batches):
        """Test five separate pushes flush 3 then 2 on manual flush."""
        for i in range(5):
            stream.push([create_metric(f"test.metric{i}", i * 100)])

        assert [len(batch) for batch in batches] == [3]
        assert stream.pending == 2

        stream.flush()

        assert [len(batch) for batch in batches] == [3, 2]
        assert [m.name for m in batches[1]] == ["test.metric3", "test.metric4"]

    def test_single_oversized_push_flushes_once(self, stream, batches):
        """Test one push larger than capacity is delivered as one batch."""
        stream.push([create_metric(f"test.metric{i}", i) for i in range(5)])

        assert len(batches) == 1
        assert len(batches[0]) == 5
        assert len(stream) == 0

    def test_push_accepts_mappings(self, stream, batches):
        stream.push([{"name": "cpu.user", "value": 12.5, "timestamp": 1, "type": "cpu"}])
        stream.flush()

        metric = batches[0][0]
        assert isinstance(metric, Metric)
        assert metric.value == 12.5

    def test_push_empty(self, stream, batches):
        stream.push([])

        assert stream.pending == 0
        assert batches == []

    def test_invalid_item_rejected_before_buffering(self, stream):
        with pytest.raises(TypeError):
            stream.push([create_metric("ok.metric", 1), "bad"])

        assert stream.pending == 0


class TestFlushAndClear:
    """Test manual flush and clear."""

    def test_manual_flush(self, stream, batches):
        metric = create_metric("test.metric", 100)

        stream.push([metric])
        stream.flush()

        assert len(batches) == 1
        assert batches[0] == (metric,)

    def test_clear_discards(self, stream, batches):
        """Test clear drops metrics without emitting."""
        stream.push([create_metric("test.metric", 100)])
        stream.clear()
        stream.flush()

        assert batches == []

    def test_empty_flush_is_silent(self, stream, batches):
        stream.flush()
        stream.flush()
        assert batches == []

        stream.push([create_metric("test.metric", 100)])
        stream.flush()

        assert len(batches) == 1

    def test_batch_is_immutable(self, stream, batches):
        stream.push([create_metric("test.metric", 100)])
        stream.flush()

        assert isinstance(batches[0], tuple)

    def test_handler_can_push_during_flush(self, stream):
        """Test a data handler pushing back starts a fresh buffer."""
        received = []

        def echo(batch):
            received.append(batch)
            if len(received) == 1:
                stream.push([create_metric("echo.metric", 1)])

        stream.subscribe(Channels.DATA, echo)
        stream.push([create_metric("test.metric", 1)])
        stream.flush()

        assert len(received) == 1
        assert stream.pending == 1


class TestCopyIsolation:
    """Test emitted batches are isolated from the caller's data."""

    def test_mutating_source_mapping_after_flush(self, stream, batches):
        """Test changing the pushed mapping does not reach the emitted metric."""
        source = {
            "name": "test.metric",
            "value": 100,
            "timestamp": now_ms(),
            "type": "memory",
            "metadata": {"unit": "bytes"},
        }

        stream.push([source])
        stream.flush()
        source["value"] = 200
        source["metadata"]["unit"] = "kilobytes"

        emitted = batches[0][0]
        assert emitted.value == 100
        assert emitted.metadata["unit"] == "bytes"

    def test_mutating_source_metadata(self, stream, batches):
        metadata = {"unit": "bytes", "tags": ["a"]}
        metric = Metric(name="test.metric", value=1, timestamp=1, type=MetricType.MEMORY, metadata=metadata)

        stream.push([metric])
        stream.flush()
        metadata["tags"].append("b")

        assert batches[0][0].metadata["tags"] == ("a",)


class TestConcurrentProducers:
    """Test pushes from several threads."""

    def test_threads_never_lose_metrics(self):
        stream = MetricsStream(Config(metrics_buffer_size=7))
        received = []
        stream.subscribe(Channels.DATA, received.append)

        def producer(index):
            for i in range(50):
                stream.push([create_metric(f"thread.metric{index}", i)])

        threads = [threading.Thread(target=producer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        stream.flush()

        assert sum(len(batch) for batch in received) == 200
        assert all(len(batch) <= 7 for batch in received)
