"""
Shared pytest fixtures for signalshelf tests.

Provides stores over temporary mediums and a controllable clock.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from signalshelf.chain import InlineChain, OperationChain
from signalshelf.mediums import JsonFileMedium, SqliteBlobMedium
from signalshelf.store import SignalStore
from signalshelf.types import format_utc


class FakeClock:
    """
    Deterministic clock for the store.

    Each call returns the current time, then advances by ``step``.
    Set ``step`` to zero to produce identical timestamps.
    """

    def __init__(self, start: datetime = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> str:
        value = format_utc(self.now)
        self.now += self.step
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "signals.json"


@pytest.fixture
def store(data_path, clock) -> SignalStore:
    """File-backed store with its own operation chain."""
    s = SignalStore(JsonFileMedium(data_path), chain=OperationChain(), clock=clock)
    yield s
    s.close()


@pytest.fixture
def sqlite_store(tmp_path, clock) -> SignalStore:
    """Embedded (single-client) store."""
    s = SignalStore(SqliteBlobMedium(tmp_path / "signals.db"), chain=InlineChain(), clock=clock)
    yield s
    s.close()


@pytest.fixture(params=["file", "sqlite"])
def any_store(request, tmp_path, clock) -> SignalStore:
    """Both mediums, for behaviour that must not depend on the medium."""
    if request.param == "file":
        s = SignalStore(JsonFileMedium(tmp_path / "signals.json"), clock=clock)
    else:
        s = SignalStore(SqliteBlobMedium(tmp_path / "signals.db"), chain=InlineChain(), clock=clock)
    yield s
    s.close()
