"""Shared pytest fixtures: throwaway data directories, ledgers and an API client."""

import pytest
from fastapi.testclient import TestClient

from repositories import MemoryManager
from store import open_ledger


class FakeClock:
    """Nanosecond clock that advances by `step` on every read."""

    def __init__(self, start: int = 1_700_000_000_000_000_000, step: int = 1_000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def memory(data_dir):
    return MemoryManager(data_dir, fsync=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def expenses(memory, clock):
    return open_ledger("expense", memory, clock=clock)


@pytest.fixture
def votes(memory, clock):
    return open_ledger("vote", memory, clock=clock)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("TALLY_DATA_DIR", str(tmp_path / "api-data"))
    monkeypatch.setenv("TALLY_FSYNC", "0")
    from main import create_app

    with TestClient(create_app()) as c:
        yield c
