"""
Serialized operation chain.

Every store operation is appended to a single chain and runs only after
the previous entry has finished. The chain keeps one tail pointer: the
completion event of the most recently scheduled call. A new call swaps
itself in as the tail, waits for the old tail, runs, then signals its
own completion so the next call can start.

Arrival order is the order in which callers take the guard lock, so
concurrent callers execute one at a time in submission order. A call
that raises still signals completion; the exception goes back to that
caller only and the chain carries on.
"""

import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class OperationChain:
    """Run callables one at a time, in the order they were submitted."""

    def __init__(self):
        self._guard = threading.Lock()
        self._tail = threading.Event()
        self._tail.set()
        self._local = threading.local()

    def run(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """
        Run ``fn(*args, **kwargs)`` after every previously submitted call.

        Re-entrant calls from inside a running operation execute inline,
        since the caller already owns the chain.
        """
        if getattr(self._local, "active", False):
            return fn(*args, **kwargs)

        done = threading.Event()
        with self._guard:
            previous, self._tail = self._tail, done

        previous.wait()
        self._local.active = True
        try:
            return fn(*args, **kwargs)
        finally:
            self._local.active = False
            done.set()

    def drain(self) -> None:
        """Block until every operation submitted so far has finished."""
        self.run(lambda: None)


class InlineChain:
    """Pass-through chain for single-client mediums."""

    def run(self, fn: Callable[..., T], *args, **kwargs) -> T:
        return fn(*args, **kwargs)

    def drain(self) -> None:
        pass
