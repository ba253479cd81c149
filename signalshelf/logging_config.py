"""
Logging configuration for signalshelf.

Three layers:

- quiet mode (default for the CLI): library chatter stays off the terminal
- debug mode (``--verbose`` or SIGNALSHELF_VERBOSE=1): everything to stderr
- the operations log: one INFO line per store mutation (created, updated,
  deleted, seeded, reset) plus malformed-data warnings, kept in the store
  directory next to the data it describes
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "signalshelf"

OPS_LOG_NAME = "signalshelf-ops.log"
OPS_LOG_MAX_BYTES = 1_000_000
OPS_LOG_BACKUPS = 3

# Libraries that log at INFO during normal MCP/CLI use
_NOISY_LOGGERS = ("mcp", "httpx", "anyio")


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library chatter out of CLI output.

    Args:
        quiet: If True, suppress warnings and library INFO logs.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG)


def configure_ops_log(store_dir: Path) -> logging.Handler:
    """
    Attach the operations log for a store directory.

    Each open Shelf gets its own handler. Returns it for detach_ops_log().
    """
    store_dir = Path(store_dir)
    store_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(store_dir / OPS_LOG_NAME),
        maxBytes=OPS_LOG_MAX_BYTES,
        backupCount=OPS_LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    # Module name without the package prefix: "store", "mediums"
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)-7s %(module)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    shelf_logger = logging.getLogger(PACKAGE_LOGGER)
    shelf_logger.addHandler(handler)
    if shelf_logger.level == logging.NOTSET or shelf_logger.level > logging.INFO:
        shelf_logger.setLevel(logging.INFO)
    return handler


def detach_ops_log(handler: Optional[logging.Handler]) -> None:
    """Remove and close a handler returned by configure_ops_log()."""
    if handler is None:
        return
    logging.getLogger(PACKAGE_LOGGER).removeHandler(handler)
    handler.close()
