"""
Store factory.

Builds a SignalStore on the medium named in the configuration:

- ``file``: JsonFileMedium, serialized through the process-wide
  OperationChain for that file path
- ``sqlite``: SqliteBlobMedium (one JSON blob under one key), single
  client, no serialization
"""

from typing import NamedTuple

from .chain import InlineChain
from .config import MEDIUM_FILE, MEDIUM_SQLITE, StoreConfig
from .mediums import DEFAULT_BLOB_KEY, JsonFileMedium, SqliteBlobMedium
from .protocol import SignalStoreProtocol
from .store import SignalStore, chain_for_path


class StoreBundle(NamedTuple):
    """A store plus what it was built on."""
    store: SignalStoreProtocol
    medium_name: str
    is_shared: bool  # True when other handlers in the process may share the medium


def create_store(config: StoreConfig) -> StoreBundle:
    """
    Create a signal store from configuration.

    Raises:
        ValueError: If the configured medium is unknown
    """
    name = config.medium.name
    if name == MEDIUM_FILE:
        medium = JsonFileMedium(config.data_path)
        store = SignalStore(medium, chain=chain_for_path(config.data_path))
        return StoreBundle(store, name, True)
    if name == MEDIUM_SQLITE:
        key = config.medium.params.get("key", DEFAULT_BLOB_KEY)
        medium = SqliteBlobMedium(config.data_path, key=key)
        store = SignalStore(medium, chain=InlineChain())
        return StoreBundle(store, name, False)
    raise ValueError(f"Unknown medium: {name!r}")
