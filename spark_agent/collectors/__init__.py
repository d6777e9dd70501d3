"""
Spark Agent - Collectors Package

Collectors measure one aspect of the running process each:
- MemoryCollector: RSS, VMS, memory percent, RSS growth rate
- CpuCollector: user and system CPU utilisation
- EventLoopCollector: asyncio scheduling lag
"""

from .cpu import CpuCollector
from .eventloop import EventLoopCollector
from .memory import MemoryCollector

__all__ = [
    "CpuCollector",
    "EventLoopCollector",
    "MemoryCollector",
]
