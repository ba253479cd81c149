"""
Configuration management for signal shelf stores.

The configuration is stored as a TOML file in the store directory.
It specifies which persistence medium to use and its parameters.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "signalshelf.toml"
CONFIG_VERSION = 1

MEDIUM_FILE = "file"
MEDIUM_SQLITE = "sqlite"
MEDIUMS = (MEDIUM_FILE, MEDIUM_SQLITE)

_DEFAULT_FILENAMES = {
    MEDIUM_FILE: "signals.json",
    MEDIUM_SQLITE: "signals.db",
}


@dataclass
class MediumConfig:
    """Configuration for the persistence medium."""
    name: str = MEDIUM_FILE
    params: dict[str, Any] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        return self.params.get("filename") or _DEFAULT_FILENAMES.get(self.name, "signals.json")


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    medium: MediumConfig = field(default_factory=MediumConfig)

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def data_path(self) -> Path:
        """Path to the persisted collection."""
        return self.path / self.medium.filename

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_store_dir(store_path: Optional[Path] = None) -> Path:
    """
    Resolve the store directory.

    Priority:
    1. Explicit argument
    2. SIGNALSHELF_STORE_PATH environment variable
    3. ~/.signalshelf
    """
    if store_path is not None:
        return Path(store_path).expanduser()
    env_path = os.environ.get("SIGNALSHELF_STORE_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".signalshelf"


def create_default_config(store_path: Path) -> StoreConfig:
    """Create a new config with defaults (file medium)."""
    return StoreConfig(path=store_path)


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    version = data.get("store", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    section = data.get("medium", {"name": MEDIUM_FILE})
    name = section.get("name", MEDIUM_FILE)
    if name not in MEDIUMS:
        raise ValueError(f"Unknown medium {name!r} (expected one of: {', '.join(MEDIUMS)})")

    return StoreConfig(
        path=store_path,
        version=version,
        created=data.get("store", {}).get("created", ""),
        medium=MediumConfig(
            name=name,
            params={k: v for k, v in section.items() if k != "name"},
        ),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    medium = {"name": config.medium.name}
    medium.update(config.medium.params)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "medium": medium,
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    else:
        config = create_default_config(store_path)
        save_config(config)
        return config
