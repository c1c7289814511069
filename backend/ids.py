"""Durable monotonic id allocator backed by its own partition."""

import logging

from codec import U64_MAX, decode_counter, encode_counter
from errors import CorruptRecordError, CounterOverflowError
from repositories.partitions import Partition

logger = logging.getLogger(__name__)

COUNTER_BLOB = "value"


class IdAllocator:
    """
    Holds the next id to hand out. Starts at 0 and only ever moves up.
    Not thread-safe on its own: the owning ledger serializes next_id().
    """

    def __init__(self, partition: Partition):
        self.partition = partition
        if partition.read(COUNTER_BLOB) is None:
            partition.write(COUNTER_BLOB, encode_counter(0))
            logger.info("Id counter initialised in partition %d", partition.partition_id)

    def peek(self) -> int:
        data = self.partition.read(COUNTER_BLOB)
        if data is None:
            raise CorruptRecordError(f"partition {self.partition.partition_id}: counter blob missing")
        return decode_counter(data)

    def next_id(self) -> int:
        current = self.peek()
        if current >= U64_MAX:
            raise CounterOverflowError(f"id counter exhausted at {current}")
        self.partition.write(COUNTER_BLOB, encode_counter(current + 1))
        return current
