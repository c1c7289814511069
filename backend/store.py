"""
Tally Persistence Layer
One Ledger per record kind. A ledger owns two partitions of the data directory:
a u64 id counter and the ordered id -> record map. Survives server restarts.

Structure on disk:
  data/
    partition-000/  expense id counter
    partition-001/  expense records, one {id:020d}.bin per record
    partition-002/  vote id counter
    partition-003/  vote records
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

import queries
from errors import InvalidInput, NotFound, PartitionMismatchError
from ids import IdAllocator
from repositories import MemoryManager, RecordMap
from schemas.records import Expense, StoredRecord, Vote
from schemas.requests import ExpensePayload, VotePayload
from validation import validate_payload

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=StoredRecord)

# kind -> (record class, payload class, counter partition, records partition).
# Partition ids are part of the on-disk format: never renumber them.
RECORD_KINDS: dict[str, tuple[type[StoredRecord], type[BaseModel], int, int]] = {
    "expense": (Expense, ExpensePayload, 0, 1),
    "vote": (Vote, VotePayload, 2, 3),
}


class Ledger(Generic[R]):
    """
    CRUD and queries for one record kind.

    A single re-entrant lock covers the counter and the map, so create/update/delete
    are atomic with respect to each other and every query reads one consistent snapshot.
    """

    def __init__(
        self,
        record_cls: type[R],
        payload_cls: type[BaseModel],
        memory: MemoryManager,
        counter_partition: int,
        records_partition: int,
        clock: Callable[[], int] = time.time_ns,
    ):
        self.record_cls = record_cls
        self.payload_cls = payload_cls
        self.kind = record_cls.KIND
        self._clock = clock
        self._lock = threading.RLock()
        self._ids = IdAllocator(memory.get(counter_partition, f"{self.kind}.counter"))
        self._records: RecordMap[R] = RecordMap(
            memory.get(records_partition, f"{self.kind}.records"), record_cls
        )

        keys = self._records.keys()
        next_id = self._ids.peek()
        if keys and keys[-1] >= next_id:
            raise PartitionMismatchError(
                f"{self.kind} counter is at {next_id} but id={keys[-1]} is already stored"
            )
        logger.info("Ledger %s opened: %d records, next id %d", self.kind, len(keys), next_id)

    # ── Internal helpers ───────────────────────────────────────────────

    def _coerce(self, payload) -> BaseModel:
        if isinstance(payload, self.payload_cls):
            return payload
        try:
            return self.payload_cls.model_validate(payload)
        except ValidationError as e:
            err = e.errors()[0]
            where = ".".join(str(p) for p in err["loc"]) or "payload"
            raise InvalidInput(f"{where}: {err['msg']}") from None

    def _not_found(self, record_id: int, action: str = "") -> NotFound:
        name = self.kind.capitalize()
        if action:
            return NotFound(f"Couldn't {action} {self.kind} with id={record_id}. {name} not found.")
        return NotFound(f"{name} with id={record_id} not found")

    # ── CRUD ───────────────────────────────────────────────────────────

    def get(self, record_id: int) -> R:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise self._not_found(record_id)
        return record

    def create(self, payload) -> R:
        payload = self._coerce(payload)
        validate_payload(self.record_cls, payload)
        with self._lock:
            record_id = self._ids.next_id()
            record = self.record_cls(
                id=record_id,
                created_at=self._clock(),
                updated_at=None,
                **payload.model_dump(),
            )
            self._records.insert(record)
        logger.info("%s created: id=%d", self.kind, record_id)
        return record

    def update(self, record_id: int, payload) -> R:
        payload = self._coerce(payload)
        validate_payload(self.record_cls, payload)
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise self._not_found(record_id, "update")
            record = current.model_copy(
                update={**payload.model_dump(), "updated_at": self._clock()}
            )
            self._records.insert(record)
        logger.info("%s updated: id=%d", self.kind, record_id)
        return record

    def delete(self, record_id: int) -> R:
        with self._lock:
            record = self._records.remove(record_id)
        if record is None:
            raise self._not_found(record_id, "delete")
        logger.info("%s deleted: id=%d", self.kind, record_id)
        return record

    # ── Queries ────────────────────────────────────────────────────────

    def snapshot(self) -> list[R]:
        """All records in ascending id order, read under the lock."""
        with self._lock:
            return [record for _, record in self._records.iter()]

    def list_all(self) -> list[R]:
        return self.snapshot()

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def range(self, start: int, end: int) -> list[R]:
        return queries.in_range(self.snapshot(), self.record_cls.DATE_FIELD, start, end)

    def above(self, threshold: float) -> list[R]:
        return queries.above(self.snapshot(), self.record_cls.AMOUNT_FIELD, threshold)

    def paginate(self, page: int, per_page: int) -> list[R]:
        queries.check_page(page, per_page)
        return queries.paginate(self.snapshot(), page, per_page)

    def sorted_desc(self) -> list[R]:
        return queries.sorted_desc(self.snapshot(), self.record_cls.AMOUNT_FIELD)

    def sum(self) -> float:
        return queries.total(self.snapshot(), self.record_cls.AMOUNT_FIELD)


def open_ledger(kind: str, memory: MemoryManager, clock: Callable[[], int] = time.time_ns) -> Ledger:
    try:
        record_cls, payload_cls, counter_partition, records_partition = RECORD_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind '{kind}'. Known: {sorted(RECORD_KINDS)}") from None
    return Ledger(record_cls, payload_cls, memory, counter_partition, records_partition, clock=clock)


def open_ledgers(data_dir: Path, fsync: bool = True) -> dict[str, Ledger]:
    """Open every record kind's ledger over one data directory."""
    memory = MemoryManager(data_dir, fsync=fsync)
    return {kind: open_ledger(kind, memory) for kind in RECORD_KINDS}
