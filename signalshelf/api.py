"""
Core API for the signal shelf.

Shelf is what front ends (CLI, MCP server) talk to. It resolves the
store directory and configuration, validates untyped payloads, and
hands typed input to the SignalStore:

- create_signal(): validate -> store.create
- patch_signal(): merge over the existing record -> validate -> store.update
- list_signals(): lenient query parsing -> store.list
"""

import logging
import time
from pathlib import Path
from typing import Any, Optional

from .backend import create_store
from .config import StoreConfig, get_store_dir, load_or_create_config
from .logging_config import configure_ops_log, detach_ops_log
from .types import SORT_NEWEST, SORTS, STATUSES, Signal, SignalQuery, TagCount
from .validators import Invalid, validate_signal_input

logger = logging.getLogger(__name__)

APP_NAME = "signalshelf"

# Payload keys a patch may carry
_PATCH_KEYS = ("url", "title", "notes", "tags", "status")


class Shelf:
    """
    Saved links with tags and a reading status.

    Not-found results are None/False; validation failures come back as
    ``(None, errors)``. Only I/O failures raise (PersistenceError).
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        ops_log: bool = True,
    ):
        """
        Args:
            store_path: Store directory; SIGNALSHELF_STORE_PATH or ~/.signalshelf if omitted
            ops_log: Write the rotating operations log into the store directory
        """
        self._store_path = get_store_dir(Path(store_path) if store_path else None)
        self._config: StoreConfig = load_or_create_config(self._store_path)
        bundle = create_store(self._config)
        self._store = bundle.store
        self._ops_handler = configure_ops_log(self._store_path) if ops_log else None
        logger.debug("Opened %s store at %s", bundle.medium_name, self._config.data_path)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def store(self):
        return self._store

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def list_signals(
        self,
        q: Optional[str] = None,
        tag: Optional[str] = None,
        status: Optional[str] = None,
        sort: Optional[str] = None,
        *,
        pinned_first: bool = False,
    ) -> list[Signal]:
        """List signals. Unrecognized status or sort values are ignored."""
        query = SignalQuery(
            q=q or None,
            tag=tag or None,
            status=status if status in STATUSES else None,
            sort=sort if sort in SORTS else SORT_NEWEST,
            pinned_first=pinned_first,
        )
        return self._store.list(query)

    def get_signal(self, id: str) -> Optional[Signal]:
        return self._store.get(id)

    def list_tags(self) -> list[TagCount]:
        return self._store.list_tags()

    def health(self) -> dict[str, Any]:
        return {"ok": True, "name": APP_NAME, "timestamp": int(time.time() * 1000)}

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create_signal(self, payload: Any) -> tuple[Optional[Signal], Optional[dict[str, str]]]:
        """
        Validate a payload and create a signal from it.

        Returns:
            (Signal, None) on success, (None, errors) when validation fails
        """
        result = validate_signal_input(payload)
        if isinstance(result, Invalid):
            return None, result.errors
        return self._store.create(result.value), None

    def patch_signal(
        self,
        id: str,
        payload: Any,
    ) -> tuple[Optional[Signal], Optional[dict[str, str]]]:
        """
        Apply a partial update.

        Payload keys are merged over the existing signal and the merged
        record is validated as a whole. ``pinned`` must be a boolean.

        Returns:
            (Signal, None) on success, (None, errors) when validation fails,
            (None, None) when no signal has this id
        """
        existing = self._store.get(id)
        if existing is None:
            return None, None

        patch = payload if isinstance(payload, dict) else {}
        merged = {key: getattr(existing, key) for key in _PATCH_KEYS}
        merged.update({key: patch[key] for key in _PATCH_KEYS if key in patch})

        result = validate_signal_input(merged)
        errors = dict(result.errors) if isinstance(result, Invalid) else {}
        if "pinned" in patch and not isinstance(patch["pinned"], bool):
            errors["pinned"] = "Pinned must be a boolean."
        if errors:
            return None, errors

        # Only the patched keys go to the store, which merges them over the
        # record as it stands when the update runs
        changes = {key: getattr(result.value, key) for key in _PATCH_KEYS if key in patch}
        if "pinned" in patch:
            changes["pinned"] = patch["pinned"]
        return self._store.update(id, changes), None

    def delete_signal(self, id: str) -> bool:
        return self._store.delete(id)

    def toggle_pinned(self, id: str) -> Optional[Signal]:
        return self._store.toggle_pinned(id)

    def reset(self) -> None:
        self._store.reset()

    def close(self) -> None:
        """Close the store and detach the operations log."""
        self._store.close()
        detach_ops_log(self._ops_handler)
        self._ops_handler = None
