"""
Durable partitions under a data directory.

Each partition is a directory holding an identity header and any number of
small blobs. Blobs are replaced atomically (write temp, fsync, rename), so a
reader sees either the old or the new contents and never a partial write.

Layout:
  <data_dir>/partition-{id:03d}/
    PARTITION        magic(4s) | version(uint16) | partition_id(uint16) | label(32s)
    <name>.bin       blobs owned by whoever opened the partition
"""

import logging
import os
import struct
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from errors import DurableWriteError, PartitionMismatchError

logger = logging.getLogger(__name__)

PARTITION_MAGIC = b"TLYP"
PARTITION_VERSION = 1
HEADER_NAME = "PARTITION"
BLOB_SUFFIX = ".bin"

_HEADER_FMT = "<4sHH32s"
_HEADER_SIZE = struct.calcsize(_HEADER_FMT)


@dataclass
class PartitionHeader:
    magic: bytes
    version: int
    partition_id: int
    label: str

    def pack(self) -> bytes:
        return struct.pack(
            _HEADER_FMT, self.magic, self.version, self.partition_id, self.label.encode("ascii")
        )

    @classmethod
    def unpack(cls, data: bytes) -> "PartitionHeader":
        if len(data) != _HEADER_SIZE:
            raise PartitionMismatchError(f"partition header is {len(data)} bytes, expected {_HEADER_SIZE}")
        magic, version, partition_id, label = struct.unpack(_HEADER_FMT, data)
        return cls(magic, version, partition_id, label.rstrip(b"\x00").decode("ascii", "replace"))


def _fsync_dir(path: Path) -> None:
    if not hasattr(os, "O_DIRECTORY"):
        return
    fd = os.open(path, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class Partition:
    """One independently addressable slice of the data directory."""

    def __init__(self, root: Path, partition_id: int, label: str, fsync: bool = True):
        if len(label.encode("ascii")) > 32:
            raise ValueError(f"partition label too long: {label!r}")
        self.partition_id = partition_id
        self.label = label
        self.fsync = fsync
        self.path = Path(root) / f"partition-{partition_id:03d}"
        self._open()

    def _open(self) -> None:
        header_path = self.path / HEADER_NAME
        expected = PartitionHeader(PARTITION_MAGIC, PARTITION_VERSION, self.partition_id, self.label)
        if not header_path.exists():
            self.path.mkdir(parents=True, exist_ok=True)
            self._replace(header_path, expected.pack())
            logger.info("Partition %d (%s) created at %s", self.partition_id, self.label, self.path)
            return

        found = PartitionHeader.unpack(header_path.read_bytes())
        if found != expected:
            raise PartitionMismatchError(
                f"{self.path} holds {found.label!r} (id={found.partition_id}, "
                f"magic={found.magic!r}, version={found.version}); "
                f"expected {self.label!r} (id={self.partition_id})"
            )
        for stale in self.path.glob("*.tmp"):
            logger.warning("Partition %d: removing interrupted write %s", self.partition_id, stale.name)
            stale.unlink(missing_ok=True)
        logger.info("Partition %d (%s) opened", self.partition_id, self.label)

    def _replace(self, target: Path, data: bytes) -> None:
        tmp = target.with_name(target.name + ".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
                if self.fsync:
                    f.flush()
                    os.fsync(f.fileno())
            tmp.replace(target)
            if self.fsync:
                _fsync_dir(self.path)
        except OSError as e:
            raise DurableWriteError(
                f"partition {self.partition_id}: write of {target.name} failed: {e}"
            ) from e

    # Blobs
    def read(self, name: str) -> Optional[bytes]:
        try:
            return (self.path / f"{name}{BLOB_SUFFIX}").read_bytes()
        except FileNotFoundError:
            return None

    def write(self, name: str, data: bytes) -> None:
        self._replace(self.path / f"{name}{BLOB_SUFFIX}", data)

    def delete(self, name: str) -> bool:
        try:
            (self.path / f"{name}{BLOB_SUFFIX}").unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise DurableWriteError(f"partition {self.partition_id}: delete of {name} failed: {e}") from e
        if self.fsync:
            _fsync_dir(self.path)
        return True

    def names(self) -> list[str]:
        """Blob names in lexicographic order."""
        return sorted(p.stem for p in self.path.glob(f"*{BLOB_SUFFIX}"))


class MemoryManager:
    """Hands out partitions of one data directory, at most one object per id."""

    def __init__(self, data_dir: Path, fsync: bool = True):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.fsync = fsync
        self._partitions: dict[int, Partition] = {}
        self._lock = threading.Lock()

    def get(self, partition_id: int, label: str) -> Partition:
        with self._lock:
            partition = self._partitions.get(partition_id)
            if partition is None:
                partition = Partition(self.data_dir, partition_id, label, fsync=self.fsync)
                self._partitions[partition_id] = partition
            elif partition.label != label:
                raise PartitionMismatchError(
                    f"partition {partition_id} already opened as {partition.label!r}, not {label!r}"
                )
            return partition
