import threading
import time

import pytest

from codec import MAX_TEXT_BYTES
from errors import InvalidInput, NotFound, PartitionMismatchError
from repositories import MemoryManager
from schemas.requests import ExpensePayload, VotePayload
from store import open_ledger, open_ledgers


def _payload(description="Lunch", amount=10.0, date=1_700_000_000) -> ExpensePayload:
    return ExpensePayload(description=description, amount=amount, date=date)


def test_create_then_get(expenses) -> None:
    created = expenses.create(_payload())

    assert created.id == 0
    assert created.created_at > 0
    assert created.updated_at is None
    assert expenses.get(created.id) == created


def test_ids_increase_and_are_never_reused(expenses) -> None:
    seen = []
    for i in range(3):
        seen.append(expenses.create(_payload(description=f"e{i}")).id)
    expenses.delete(seen[-1])
    expenses.delete(seen[0])
    seen.append(expenses.create(_payload()).id)
    seen.append(expenses.create(_payload()).id)

    assert seen == sorted(set(seen))
    assert seen == [0, 1, 2, 3, 4]


def test_update_replaces_fields_and_stamps_updated_at(memory) -> None:
    ledger = open_ledger("expense", memory)
    created = ledger.create(_payload())
    before = time.time_ns()

    updated = ledger.update(created.id, _payload(description="Dinner", amount=42.0, date=5))

    assert updated.description == "Dinner"
    assert updated.amount == 42.0
    assert updated.date == 5
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None and updated.updated_at >= before
    assert ledger.get(created.id) == updated


def test_update_missing_record(expenses) -> None:
    with pytest.raises(NotFound, match="id=99"):
        expenses.update(99, _payload())


def test_update_validates_before_lookup(expenses) -> None:
    with pytest.raises(InvalidInput):
        expenses.update(99, _payload(amount=0))


def test_delete_then_get(expenses) -> None:
    created = expenses.create(_payload())
    assert expenses.delete(created.id) == created

    with pytest.raises(NotFound, match=f"id={created.id}"):
        expenses.get(created.id)
    with pytest.raises(NotFound, match="Couldn't delete"):
        expenses.delete(created.id)


@pytest.mark.parametrize(
    "payload, message",
    [
        (_payload(description=""), "Description cannot be empty"),
        (_payload(description="   \t"), "Description cannot be empty"),
        (_payload(amount=0), "Amount must be greater than zero"),
        (_payload(amount=-3.5), "Amount must be greater than zero"),
        (_payload(amount=float("nan")), "Amount must be greater than zero"),
        (_payload(date=0), "Date must be a valid timestamp"),
        (_payload(description="x" * (MAX_TEXT_BYTES + 1)), "at most"),
        # first violated rule wins
        (_payload(description=" ", amount=0, date=0), "Description"),
        (_payload(amount=-1, date=0), "Amount"),
    ],
)
def test_create_rejects_invalid_payloads(expenses, payload, message) -> None:
    with pytest.raises(InvalidInput, match=message):
        expenses.create(payload)
    assert expenses.count() == 0


def test_rejected_create_does_not_consume_an_id(expenses) -> None:
    with pytest.raises(InvalidInput):
        expenses.create(_payload(date=0))
    assert expenses.create(_payload()).id == 0


def test_create_accepts_plain_dicts(expenses) -> None:
    record = expenses.create({"description": "Taxi", "amount": 3, "date": 9})
    assert record.amount == 3.0

    with pytest.raises(InvalidInput, match="amount"):
        expenses.create({"description": "Taxi", "amount": "lots", "date": 9})


def test_vote_rules_cover_every_text_field(votes) -> None:
    with pytest.raises(InvalidInput, match="Voter cannot be empty"):
        votes.create(VotePayload(proposal="Parks", voter=" ", weight=1, cast_at=1))
    with pytest.raises(InvalidInput, match="Weight"):
        votes.create(VotePayload(proposal="Parks", voter="ana", weight=0, cast_at=1))
    with pytest.raises(InvalidInput, match="Cast at must be a valid timestamp"):
        votes.create(VotePayload(proposal="Parks", voter="ana", weight=1, cast_at=0))

    vote = votes.create(VotePayload(proposal="Parks", voter="ana", weight=2, cast_at=1))
    assert votes.get(vote.id).voter == "ana"


def test_kinds_do_not_share_ids_or_records(expenses, votes) -> None:
    e = expenses.create(_payload())
    v = votes.create(VotePayload(proposal="Parks", voter="ana", weight=1, cast_at=1))

    assert e.id == v.id == 0
    assert expenses.count() == 1 and votes.count() == 1


def test_records_and_counter_survive_restart(data_dir) -> None:
    ledgers = open_ledgers(data_dir, fsync=False)
    a = ledgers["expense"].create(_payload(description="a"))
    b = ledgers["expense"].create(_payload(description="b"))
    ledgers["expense"].delete(b.id)

    reopened = open_ledgers(data_dir, fsync=False)["expense"]
    assert reopened.list_all() == [a]
    assert reopened.create(_payload()).id == 2


def test_reset_counter_is_refused(data_dir) -> None:
    ledger = open_ledgers(data_dir, fsync=False)["expense"]
    ledger.create(_payload())
    ledger.create(_payload())
    (data_dir / "partition-000" / "value.bin").write_bytes((0).to_bytes(8, "little"))

    with pytest.raises(PartitionMismatchError, match="counter"):
        open_ledger("expense", MemoryManager(data_dir, fsync=False))


def test_unknown_kind(memory) -> None:
    with pytest.raises(ValueError, match="Unknown record kind"):
        open_ledger("invoice", memory)


def test_concurrent_creates_get_distinct_consecutive_ids(expenses) -> None:
    threads_n, per_thread = 8, 20
    ids: list[int] = []
    ids_lock = threading.Lock()
    start = threading.Barrier(threads_n)

    def worker(n: int) -> None:
        start.wait()
        for i in range(per_thread):
            record = expenses.create(_payload(description=f"t{n}-{i}"))
            with ids_lock:
                ids.append(record.id)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(ids) == list(range(threads_n * per_thread))
    assert expenses.count() == threads_n * per_thread
    assert [r.id for r in expenses.list_all()] == list(range(threads_n * per_thread))
