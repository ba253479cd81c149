"""
Persistence mediums for the signal collection.

A medium stores the whole collection as one JSON array and knows nothing
about signals beyond that. Two implementations share the same contract:

- JsonFileMedium: a JSON file on a shared filesystem. Writes go to a
  temporary sibling file that then replaces the target, so readers in
  any process see either the previous or the next collection.
- SqliteBlobMedium: an embedded SQLite database holding the collection
  as a single JSON blob under one key.

Malformed content (invalid JSON, or a value that isn't an array) reads
as an empty collection. Real I/O failures raise PersistenceError.
"""

import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Optional

from .errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_BLOB_KEY = "signalshelf.signals.v1"


def _decode_collection(raw: Optional[str], source: str) -> list[dict[str, Any]]:
    """Decode a persisted JSON array, treating anything malformed as empty."""
    if raw is None or not raw.strip():
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Malformed JSON in %s, treating as empty: %s", source, e)
        return []
    if not isinstance(parsed, list):
        logger.warning("Expected a JSON array in %s, got %s; treating as empty",
                       source, type(parsed).__name__)
        return []
    return parsed


class JsonFileMedium:
    """
    A single JSON file holding the full collection.

    The file is created with an empty array if absent before any read.
    """

    def __init__(self, path: Path):
        """
        Args:
            path: Path to the JSON file
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def ensure(self) -> None:
        """Create the parent directory and an empty array file if needed."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if not self._path.exists():
                self._replace("[]")
        except OSError as e:
            raise PersistenceError(f"Cannot create {self._path}: {e}", self._path) from e

    def read(self) -> list[dict[str, Any]]:
        self.ensure()
        try:
            raw = self._path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Undecodable content in %s, treating as empty: %s", self._path, e)
            return []
        except OSError as e:
            raise PersistenceError(f"Cannot read {self._path}: {e}", self._path) from e
        return _decode_collection(raw, str(self._path))

    def write(self, records: list[dict[str, Any]]) -> None:
        serialized = json.dumps(records, indent=2, ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._replace(serialized)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self._path}: {e}", self._path) from e

    def clear(self) -> None:
        self.write([])

    def close(self) -> None:
        pass

    def _replace(self, serialized: str) -> None:
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            tmp_path.write_text(serialized, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


class SqliteBlobMedium:
    """
    Embedded key/value store: the collection is one JSON blob under one key.

    Meant for a single client. There is no cross-call serialization here;
    the owning store pairs it with an InlineChain.
    """

    def __init__(self, db_path: Path, key: str = DEFAULT_BLOB_KEY):
        """
        Args:
            db_path: Path to SQLite database file
            key: Key under which the collection blob is stored
        """
        self._db_path = Path(db_path)
        self._key = key
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def path(self) -> Path:
        return self._db_path

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open {self._db_path}: {e}", self._db_path) from e

    def ensure(self) -> None:
        pass

    def read(self) -> list[dict[str, Any]]:
        try:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE key = ?", (self._key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot read {self._db_path}: {e}", self._db_path) from e
        return _decode_collection(row[0] if row else None, f"{self._db_path}:{self._key}")

    def write(self, records: list[dict[str, Any]]) -> None:
        serialized = json.dumps(records, ensure_ascii=False)
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    (self._key, serialized),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot write {self._db_path}: {e}", self._db_path) from e

    def clear(self) -> None:
        try:
            with self._conn:
                self._conn.execute("DELETE FROM kv WHERE key = ?", (self._key,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot clear {self._db_path}: {e}", self._db_path) from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
