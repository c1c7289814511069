"""Ordered id -> record map stored in one partition, one encoded blob per record."""

import logging
from typing import Generic, Optional, TypeVar

import codec
from errors import CorruptRecordError
from repositories.partitions import Partition

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Zero-padded to the width of U64_MAX so name order is key order.
_KEY_WIDTH = 20


def _blob_name(record_id: int) -> str:
    return f"{record_id:0{_KEY_WIDTH}d}"


class RecordMap(Generic[R]):
    """
    Every mutation is written through before returning; there is no cache.
    Callers that need a consistent view across several calls hold their own lock.
    """

    def __init__(self, partition: Partition, record_cls: type[R]):
        self.partition = partition
        self.record_cls = record_cls

    def _load(self, name: str, data: bytes) -> R:
        record = codec.decode(self.record_cls, data)
        if _blob_name(record.id) != name:
            raise CorruptRecordError(
                f"partition {self.partition.partition_id}: blob {name} holds id={record.id}"
            )
        return record

    def get(self, record_id: int) -> Optional[R]:
        name = _blob_name(record_id)
        data = self.partition.read(name)
        if data is None:
            return None
        return self._load(name, data)

    def insert(self, record: R) -> None:
        """Upsert keyed by record.id."""
        self.partition.write(_blob_name(record.id), codec.encode(record))

    def remove(self, record_id: int) -> Optional[R]:
        prior = self.get(record_id)
        if prior is None:
            return None
        self.partition.delete(_blob_name(record_id))
        return prior

    def keys(self) -> list[int]:
        return [int(name) for name in self.partition.names()]

    def iter(self) -> list[tuple[int, R]]:
        """(id, record) pairs in ascending id order, read fresh on each call."""
        items = []
        for name in self.partition.names():
            data = self.partition.read(name)
            if data is None:
                # removed between listing and reading
                continue
            record = self._load(name, data)
            items.append((record.id, record))
        return items

    def __len__(self) -> int:
        return len(self.partition.names())

    def __contains__(self, record_id: int) -> bool:
        return self.partition.read(_blob_name(record_id)) is not None
