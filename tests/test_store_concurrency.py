"""
Concurrency tests for the file-backed SignalStore.

Many threads hit the same file at once, the way parallel request
handlers in one process would. Operations must behave as if applied
one after another: no lost updates, no double seeding, no torn writes.
"""

import json
import threading

from signalshelf.chain import OperationChain
from signalshelf.config import StoreConfig
from signalshelf.backend import create_store
from signalshelf.mediums import JsonFileMedium
from signalshelf.store import SignalStore, chain_for_path
from signalshelf.types import SignalQuery
from signalshelf.validators import SignalInput


def _run_threads(target, count, *args):
    """Start ``count`` threads on ``target(idx, *args)`` behind a barrier."""
    barrier = threading.Barrier(count)
    errors = []

    def wrapped(idx):
        barrier.wait()
        try:
            target(idx, *args)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=wrapped, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


class TestConcurrentSeeding:
    """Racing first loads seed exactly once."""

    def test_racing_reads_seed_once(self, tmp_path):
        store = SignalStore(JsonFileMedium(tmp_path / "signals.json"))
        results = [None] * 8

        def reader(idx):
            results[idx] = {s.id for s in store.list()}

        errors = _run_threads(reader, 8)
        assert not errors
        assert all(r == results[0] for r in results)
        assert len(results[0]) == 2
        assert len(json.loads((tmp_path / "signals.json").read_text())) == 2

    def test_racing_read_and_create_seed_once(self, tmp_path):
        store = SignalStore(JsonFileMedium(tmp_path / "signals.json"))

        def worker(idx):
            if idx % 2:
                store.list()
            else:
                store.create(SignalInput(url="https://example.com", title=f"Item {idx}"))

        errors = _run_threads(worker, 6)
        assert not errors
        signals = store.list()
        seeds = [s for s in signals if s.title in ("Fetch API reference", "Checkout UX patterns")]
        assert len(seeds) == 2
        assert len(signals) == 5


class TestConcurrentMutations:
    """Concurrent create/update/delete lose nothing."""

    def test_concurrent_creates_all_persist(self, tmp_path):
        store = SignalStore(JsonFileMedium(tmp_path / "signals.json"))
        per_thread = 10

        def creator(idx):
            for i in range(per_thread):
                store.create(SignalInput(
                    url=f"https://example.com/{idx}/{i}",
                    title=f"Thread {idx} item {i}",
                    tags=[f"t{idx}"],
                ))

        errors = _run_threads(creator, 6)
        assert not errors

        data = json.loads((tmp_path / "signals.json").read_text())
        assert len(data) == 6 * per_thread + 2
        assert len({d["id"] for d in data}) == len(data)
        counts = {t.name: t.count for t in store.list_tags()}
        for idx in range(6):
            assert counts[f"t{idx}"] == per_thread

    def test_concurrent_updates_no_lost_writes(self, tmp_path):
        """Each thread updates its own signal; every update survives."""
        store = SignalStore(JsonFileMedium(tmp_path / "signals.json"))
        ids = [
            store.create(SignalInput(url="https://example.com", title=f"Item {i}")).id
            for i in range(8)
        ]

        def updater(idx):
            for n in range(5):
                store.update(ids[idx], {"notes": f"rev {n}", "status": "reading"})

        errors = _run_threads(updater, 8)
        assert not errors
        for signal_id in ids:
            signal = store.get(signal_id)
            assert signal.notes == "rev 4"
            assert signal.status == "reading"

    def test_concurrent_create_and_delete(self, tmp_path):
        store = SignalStore(JsonFileMedium(tmp_path / "signals.json"))
        doomed = [
            store.create(SignalInput(url="https://example.com", title=f"Doomed {i}")).id
            for i in range(10)
        ]

        def worker(idx):
            if idx == 0:
                for signal_id in doomed:
                    assert store.delete(signal_id) is True
            else:
                for i in range(5):
                    store.create(SignalInput(url="https://example.com", title=f"New {idx}-{i}"))

        errors = _run_threads(worker, 4)
        assert not errors
        remaining = store.list()
        assert not {s.id for s in remaining} & set(doomed)
        assert len(remaining) == 2 + 3 * 5

    def test_readers_never_see_torn_file(self, tmp_path):
        """Readers outside the store always parse a complete array."""
        path = tmp_path / "signals.json"
        store = SignalStore(JsonFileMedium(path))
        store.list()
        stop = threading.Event()
        bad = []

        def raw_reader():
            while not stop.is_set():
                try:
                    data = json.loads(path.read_text())
                except (json.JSONDecodeError, FileNotFoundError) as e:
                    bad.append(e)
                    continue
                if not isinstance(data, list):
                    bad.append(data)

        reader = threading.Thread(target=raw_reader)
        reader.start()
        try:
            for i in range(50):
                store.create(SignalInput(url="https://example.com", title=f"Item {i}", notes="x" * 500))
        finally:
            stop.set()
            reader.join(timeout=10)
        assert bad == []


class TestSharedChain:
    """Stores opened on the same file share one chain."""

    def test_chain_for_path_is_shared(self, tmp_path):
        a = chain_for_path(tmp_path / "signals.json")
        b = chain_for_path(tmp_path / "." / "signals.json")
        assert a is b
        assert isinstance(a, OperationChain)
        assert chain_for_path(tmp_path / "other.json") is not a

    def test_two_stores_one_file(self, tmp_path):
        """Handlers that each build their own store still serialize."""
        config = StoreConfig(path=tmp_path)
        stores = [create_store(config).store for _ in range(4)]

        def creator(idx):
            for i in range(10):
                stores[idx].create(SignalInput(url="https://example.com", title=f"S{idx} {i}"))

        errors = _run_threads(creator, 4)
        assert not errors
        assert len(stores[0].list(SignalQuery(q="example.com"))) == 40
