import pytest

from codec import U64_MAX, encode_counter
from errors import CounterOverflowError, PartitionMismatchError
from ids import COUNTER_BLOB, IdAllocator
from repositories import MemoryManager, Partition, RecordMap
from schemas.records import Expense


def test_partition_blobs_survive_reopen(data_dir) -> None:
    first = Partition(data_dir, 5, "test.blobs", fsync=False)
    first.write("b", b"two")
    first.write("a", b"one")
    first.write("a", b"uno")

    again = Partition(data_dir, 5, "test.blobs", fsync=False)
    assert again.read("a") == b"uno"
    assert again.read("missing") is None
    assert again.names() == ["a", "b"]
    assert again.delete("b") is True
    assert again.delete("b") is False
    assert again.names() == ["a"]


def test_partition_refuses_foreign_header(data_dir) -> None:
    Partition(data_dir, 1, "expense.records", fsync=False)
    with pytest.raises(PartitionMismatchError, match="expense.records"):
        Partition(data_dir, 1, "vote.records", fsync=False)


def test_partition_refuses_corrupt_header(data_dir) -> None:
    p = Partition(data_dir, 2, "x", fsync=False)
    (p.path / "PARTITION").write_bytes(b"garbage")
    with pytest.raises(PartitionMismatchError):
        Partition(data_dir, 2, "x", fsync=False)


def test_partition_clears_interrupted_writes(data_dir) -> None:
    p = Partition(data_dir, 3, "x", fsync=False)
    p.write("kept", b"ok")
    (p.path / "kept.bin.tmp").write_bytes(b"half")

    again = Partition(data_dir, 3, "x", fsync=False)
    assert not (again.path / "kept.bin.tmp").exists()
    assert again.read("kept") == b"ok"


def test_partition_writes_with_fsync(data_dir) -> None:
    p = Partition(data_dir, 4, "synced")
    p.write("v", b"1")
    assert p.read("v") == b"1"
    assert p.delete("v") is True


def test_memory_manager_reuses_partitions_and_checks_labels(data_dir) -> None:
    memory = MemoryManager(data_dir, fsync=False)
    assert memory.get(0, "a") is memory.get(0, "a")
    with pytest.raises(PartitionMismatchError):
        memory.get(0, "b")


def test_id_allocator_is_monotonic_and_durable(memory, data_dir) -> None:
    ids = IdAllocator(memory.get(0, "expense.counter"))
    assert ids.peek() == 0
    assert [ids.next_id() for _ in range(3)] == [0, 1, 2]

    reopened = IdAllocator(MemoryManager(data_dir, fsync=False).get(0, "expense.counter"))
    assert reopened.peek() == 3
    assert reopened.next_id() == 3


def test_record_map_orders_by_numeric_id(memory) -> None:
    records = RecordMap(memory.get(1, "expense.records"), Expense)
    for record_id in (10, 2, 100):
        records.insert(
            Expense(id=record_id, description=f"e{record_id}", amount=1.0, date=1, created_at=1)
        )

    assert [k for k, _ in records.iter()] == [2, 10, 100]
    assert records.keys() == [2, 10, 100]
    assert len(records) == 3
    assert 10 in records and 11 not in records
    assert records.remove(10).description == "e10"
    assert records.remove(10) is None
    assert records.get(10) is None


def test_id_allocator_refuses_to_pass_u64_max(memory) -> None:
    partition = memory.get(0, "expense.counter")
    ids = IdAllocator(partition)
    partition.write(COUNTER_BLOB, encode_counter(U64_MAX))

    with pytest.raises(CounterOverflowError):
        ids.next_id()
    assert ids.peek() == U64_MAX
    assert partition.read(COUNTER_BLOB) == encode_counter(U64_MAX)
