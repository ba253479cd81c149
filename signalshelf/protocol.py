"""
Protocol definitions for the signal store and its persistence mediums.

Defines interface contracts at two levels:
- SignalStoreProtocol: the public store API (CLI, MCP server, Shelf)
- MediumProtocol: where the collection is persisted
  (JSON file on disk, or an embedded SQLite blob)
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from .types import Signal, SignalQuery, TagCount
from .validators import SignalInput


@runtime_checkable
class MediumProtocol(Protocol):
    """
    Persisted collection as one JSON array.

    Implemented by:
    - JsonFileMedium (shared durable file)
    - SqliteBlobMedium (embedded single-key store)
    """

    def ensure(self) -> None: ...

    def read(self) -> list[dict[str, Any]]: ...

    def write(self, records: list[dict[str, Any]]) -> None: ...

    def clear(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class SignalStoreProtocol(Protocol):
    """The public interface for signal storage."""

    # -- Read operations --

    def list(self, query: Optional[SignalQuery] = None) -> list[Signal]: ...

    def get(self, id: str) -> Optional[Signal]: ...

    def list_tags(self) -> list[TagCount]: ...

    def count(self) -> int: ...

    # -- Write operations --

    def create(self, input: SignalInput) -> Signal: ...

    def update(self, id: str, patch: Mapping[str, Any]) -> Optional[Signal]: ...

    def delete(self, id: str) -> bool: ...

    def toggle_pinned(self, id: str) -> Optional[Signal]: ...

    def reset(self) -> None: ...

    def close(self) -> None: ...
