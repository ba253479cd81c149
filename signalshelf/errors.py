"""
Error types and the error log for signalshelf.

Persistence failures surface to the caller as PersistenceError. Front
ends show a one-line message and append the full traceback to
``signalshelf-errors.log`` in the store directory the command was using.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import get_store_dir

ERROR_LOG_NAME = "signalshelf-errors.log"


class PersistenceError(OSError):
    """Reading or writing the persisted collection failed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


def error_log_path(store_dir: Optional[Path] = None) -> Path:
    """Error log inside the store directory (explicit, env, or default)."""
    return get_store_dir(store_dir) / ERROR_LOG_NAME


def _format_entry(exc: BaseException, operation: str) -> str:
    timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
    header = f"[{timestamp}] {operation or 'signalshelf'}: {type(exc).__name__}"
    lines = [header]
    data_path = getattr(exc, "path", None)
    if isinstance(exc, PersistenceError) and data_path is not None:
        lines.append(f"data: {data_path}")
    lines.append("".join(traceback.format_exception(exc)).rstrip())
    return "\n".join(lines) + "\n\n"


def log_exception(
    exc: BaseException,
    operation: str = "",
    store_dir: Optional[Path] = None,
) -> Path:
    """
    Append an exception with its traceback to the store's error log.

    Args:
        exc: The exception that occurred
        operation: What was running (e.g. the CLI command)
        store_dir: Store directory in use; resolved like Shelf does if omitted

    Returns:
        Path to the error log file
    """
    log_path = error_log_path(store_dir)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(_format_entry(exc, operation))
    except OSError:
        pass  # the message already reached the user
    return log_path
