"""
Signal store: the canonical collection of saved links.

The store owns every rule about the collection:
- seeding an empty medium with example signals, exactly once
- tag normalization and timestamping on create/update
- filtering and sorting for list queries
- one full read-modify-write per mutation, one mutation at a time

Each operation runs as a single unit on the store's operation chain and
re-reads the medium, so a failed write never leaves stale state behind
for the operations queued after it.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel

from .chain import InlineChain, OperationChain
from .protocol import MediumProtocol
from .types import (
    SORT_OLDEST,
    STATUS_INBOX,
    STATUS_READING,
    Signal,
    SignalQuery,
    TagCount,
    format_utc,
    make_id,
    normalize_tags,
    parse_utc_timestamp,
    utc_now,
)
from .validators import SignalInput

logger = logging.getLogger(__name__)

# Fields a patch may change; id and createdAt are frozen
PATCHABLE_FIELDS = frozenset({"url", "title", "notes", "tags", "status", "pinned"})

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

_chains: dict[Path, OperationChain] = {}
_chains_lock = threading.Lock()


def chain_for_path(path: Path) -> OperationChain:
    """Shared operation chain for a file path, one per process."""
    key = Path(path).expanduser().resolve()
    with _chains_lock:
        chain = _chains.get(key)
        if chain is None:
            chain = _chains[key] = OperationChain()
        return chain


def build_seed_signals(now: Optional[datetime] = None) -> list[Signal]:
    """The example signals written to an empty medium."""
    now = now or datetime.now(timezone.utc)
    day = timedelta(days=1)
    fetch_id = make_id()
    return [
        Signal(
            id=fetch_id,
            url="https://developer.mozilla.org/en-US/docs/Web/API/Fetch_API",
            title="Fetch API reference",
            notes="Great refresher on request/response patterns and streaming bodies.",
            tags=["research", "api"],
            status=STATUS_INBOX,
            created_at=format_utc(now - 3 * day),
            updated_at=format_utc(now - 2 * day),
        ),
        Signal(
            id=make_id({fetch_id}),
            url="https://stripe.com/blog/checkout-ux",
            title="Checkout UX patterns",
            notes="Potential ideas for reducing friction in the onboarding flow.",
            tags=["product", "ux"],
            status=STATUS_READING,
            created_at=format_utc(now - 7 * day),
            updated_at=format_utc(now - 1 * day),
        ),
    ]


def _created_key(signal: Signal) -> datetime:
    try:
        return parse_utc_timestamp(signal.created_at)
    except (ValueError, TypeError):
        return _EPOCH


def _find(signals: list[Signal], id: str) -> int:
    for index, signal in enumerate(signals):
        if signal.id == id:
            return index
    return -1


class SignalStore:
    """
    Store for signals on top of a persistence medium.

    File-backed stores serialize all operations through an OperationChain
    (shared per file path). Embedded stores are single-client and use an
    InlineChain instead.
    """

    def __init__(
        self,
        medium: MediumProtocol,
        chain: Optional[Union[OperationChain, InlineChain]] = None,
        clock: Callable[[], str] = utc_now,
    ):
        """
        Args:
            medium: Where the collection is persisted
            chain: Operation chain; a private OperationChain if omitted
            clock: Returns the current canonical timestamp
        """
        self._medium = medium
        self._chain = chain if chain is not None else OperationChain()
        self._clock = clock
        self._medium.ensure()

    @property
    def medium(self) -> MediumProtocol:
        return self._medium

    # -------------------------------------------------------------------------
    # Persistence (always called from inside the chain)
    # -------------------------------------------------------------------------

    def _read(self) -> list[Signal]:
        signals = []
        for entry in self._medium.read():
            if not isinstance(entry, dict) or not entry.get("id"):
                logger.warning("Dropping malformed persisted entry: %r", entry)
                continue
            signals.append(Signal.from_dict(entry))
        return signals

    def _write(self, signals: list[Signal]) -> None:
        self._medium.write([s.to_dict() for s in signals])

    def _load(self) -> list[Signal]:
        """Read the collection, seeding it first if it is empty."""
        signals = self._read()
        if signals:
            return signals
        signals = build_seed_signals(parse_utc_timestamp(self._clock()))
        self._write(signals)
        logger.info("Seeded empty store with %d example signals", len(signals))
        return signals

    def _touch(self, created_at: str) -> str:
        """Fresh updatedAt, never earlier than createdAt."""
        now = self._clock()
        try:
            if parse_utc_timestamp(now) < parse_utc_timestamp(created_at):
                return created_at
        except (ValueError, TypeError):
            pass
        return now

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def list(self, query: Optional[SignalQuery] = None) -> list[Signal]:
        """
        List signals matching a query.

        Filters apply in order: free text (url, title, notes, or a tag
        substring), exact tag, exact status. The result is sorted by
        createdAt, newest first unless ``query.sort`` is "oldest"; equal
        timestamps keep collection order.
        """
        query = query or SignalQuery()
        return self._chain.run(self._list, query)

    def _list(self, query: SignalQuery) -> list[Signal]:
        items = [s for s in self._load() if query.matches(s)]
        items.sort(key=_created_key, reverse=query.sort != SORT_OLDEST)
        if query.pinned_first:
            items.sort(key=lambda s: not s.pinned)
        return items

    def get(self, id: str) -> Optional[Signal]:
        """Get a signal by ID, or None."""
        return self._chain.run(self._get, id)

    def _get(self, id: str) -> Optional[Signal]:
        signals = self._load()
        index = _find(signals, id)
        return signals[index] if index >= 0 else None

    def list_tags(self) -> list[TagCount]:
        """Distinct tags with usage counts, sorted by name."""
        return self._chain.run(self._list_tags)

    def _list_tags(self) -> list[TagCount]:
        counts: Counter[str] = Counter()
        for signal in self._load():
            counts.update(signal.tags)
        return [TagCount(name, count) for name, count in sorted(counts.items())]

    def count(self) -> int:
        return self._chain.run(lambda: len(self._load()))

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(self, input: SignalInput) -> Signal:
        """
        Create a signal at the head of the collection.

        The store assigns id, createdAt and updatedAt; tags are normalized.
        The full collection is persisted before returning.
        """
        return self._chain.run(self._create, input)

    def _create(self, input: SignalInput) -> Signal:
        signals = self._load()
        now = self._clock()
        signal = Signal(
            id=make_id(s.id for s in signals),
            url=input.url,
            title=input.title,
            notes=input.notes or "",
            tags=normalize_tags(input.tags),
            status=input.status or STATUS_INBOX,
            created_at=now,
            updated_at=now,
        )
        signals.insert(0, signal)
        self._write(signals)
        logger.info("Created signal %s (%s)", signal.id, signal.url)
        return signal

    def update(
        self,
        id: str,
        patch: Union[Mapping[str, Any], SignalInput],
    ) -> Optional[Signal]:
        """
        Merge patch fields over an existing signal.

        Only fields present in the patch change (a SignalInput contributes
        the fields that were explicitly set). id and createdAt never change;
        updatedAt is always refreshed.

        Returns:
            The updated Signal, or None if no signal has this id
        """
        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)
        return self._chain.run(self._update, id, dict(patch))

    def _update(self, id: str, patch: dict[str, Any]) -> Optional[Signal]:
        signals = self._load()
        index = _find(signals, id)
        if index < 0:
            return None

        existing = signals[index]
        changes = {k: v for k, v in patch.items() if k in PATCHABLE_FIELDS}
        if "tags" in changes:
            changes["tags"] = normalize_tags(changes["tags"])
        if "notes" in changes and changes["notes"] is None:
            changes["notes"] = ""
        if "status" in changes and not changes["status"]:
            changes["status"] = STATUS_INBOX
        if "pinned" in changes:
            changes["pinned"] = bool(changes["pinned"])

        updated = replace(existing, **changes, updated_at=self._touch(existing.created_at))
        signals[index] = updated
        self._write(signals)
        logger.info("Updated signal %s (%s)", id, ", ".join(sorted(changes)) or "touch")
        return updated

    def toggle_pinned(self, id: str) -> Optional[Signal]:
        """Flip the pinned flag. Returns None if no signal has this id."""
        return self._chain.run(self._toggle_pinned, id)

    def _toggle_pinned(self, id: str) -> Optional[Signal]:
        existing = self._get(id)
        if existing is None:
            return None
        return self._update(id, {"pinned": not existing.pinned})

    def delete(self, id: str) -> bool:
        """
        Delete a signal.

        The collection is persisted even when nothing matched.

        Returns:
            True if a signal was removed
        """
        return self._chain.run(self._delete, id)

    def _delete(self, id: str) -> bool:
        signals = self._load()
        index = _find(signals, id)
        if index >= 0:
            del signals[index]
        self._write(signals)
        if index >= 0:
            logger.info("Deleted signal %s", id)
        return index >= 0

    def reset(self) -> None:
        """Remove every signal. The next access seeds again."""
        self._chain.run(self._medium.clear)
        logger.info("Reset store")

    def close(self) -> None:
        """Wait for queued operations, then release the medium."""
        self._chain.drain()
        self._medium.close()
