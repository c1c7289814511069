"""Persistence layer: durable partitions and the ordered record map on top of them."""

from .partitions import MemoryManager, Partition
from .record_map import RecordMap

__all__ = ["MemoryManager", "Partition", "RecordMap"]
