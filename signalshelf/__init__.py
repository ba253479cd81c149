"""
SignalShelf

A personal "save it for later" link store: URLs with a title, notes,
tags, and a reading status, persisted as one JSON collection.

Quick Start:
    from signalshelf import Shelf

    shelf = Shelf()  # uses ~/.signalshelf/
    signal, errors = shelf.create_signal({"url": "https://example.com", "title": "Example"})
    shelf.list_signals(q="example", sort="oldest")

CLI Usage:
    signalshelf add https://example.com "Example" -t reading-list
    signalshelf list --tag reading-list
    signalshelf update <id> --status done

Default Store:
    ~/.signalshelf/ (created automatically, seeded with two example signals).
    Override with SIGNALSHELF_STORE_PATH or an explicit path argument.

Environment Variables:
    SIGNALSHELF_STORE_PATH   - Override default store location
    SIGNALSHELF_VERBOSE      - Set to 1 for debug logging in the CLI
"""

from .api import Shelf
from .chain import InlineChain, OperationChain
from .errors import PersistenceError
from .mediums import JsonFileMedium, SqliteBlobMedium
from .store import SignalStore
from .types import Signal, SignalQuery, TagCount, normalize_tags
from .validators import Invalid, SignalInput, Valid, validate_signal_input

__version__ = "0.1.0"
__all__ = [
    "Shelf",
    "SignalStore",
    "Signal",
    "SignalQuery",
    "SignalInput",
    "TagCount",
    "OperationChain",
    "InlineChain",
    "JsonFileMedium",
    "SqliteBlobMedium",
    "PersistenceError",
    "Valid",
    "Invalid",
    "normalize_tags",
    "validate_signal_input",
]
