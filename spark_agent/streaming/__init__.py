"""
Spark Agent - Streaming Package

Buffers published metrics for downstream delivery.
"""

from .stream import MetricsStream

__all__ = ["MetricsStream"]
