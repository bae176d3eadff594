"""
NAVTREE CONFIG - Application configuration from navtree.toml.

Process-level settings (where the store lives, how the server binds, log
level) are loaded once from TOML. The navigation settings that shape the
tree (nestingEnabled, backSteps) are NOT here: they live in the durable
store so every ingested event can snapshot them (see infrastructure.settings).

Usage:
    from infrastructure.config import load_config

    config = load_config()
    store = SQLiteKeyValueStore(config.storage.path)

Lookup order for the TOML file:
1. Explicit path argument
2. NAVTREE_CONFIG environment variable
3. config/navtree.toml next to the project root
"""
import os
import tomllib
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import msgspec

from core.locations import MAX_LABEL_LENGTH

CONFIG_ENV_VAR = "NAVTREE_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "navtree.toml"


class StorageConfig(msgspec.Struct, kw_only=True):
    path: str = "data/navtree.db"


class ServerConfig(msgspec.Struct, kw_only=True):
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 1


class LoggingConfig(msgspec.Struct, kw_only=True):
    level: str = "INFO"


class DisplayConfig(msgspec.Struct, kw_only=True):
    max_label_length: int = MAX_LABEL_LENGTH


class AppConfig(msgspec.Struct, kw_only=True):
    """Top-level configuration; every section is optional in the TOML file."""
    storage: StorageConfig = msgspec.field(default_factory=StorageConfig)
    server: ServerConfig = msgspec.field(default_factory=ServerConfig)
    logging: LoggingConfig = msgspec.field(default_factory=LoggingConfig)
    display: DisplayConfig = msgspec.field(default_factory=DisplayConfig)


def resolve_config_path(path: Optional[Path | str] = None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_toml_config(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """
    Load raw configuration sections from navtree.toml.

    Returns:
        Dict with all configuration sections (empty if the file is unusable)
    """
    config_path = resolve_config_path(path)
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        warnings.warn(f"Failed to load config from {config_path}, using defaults: {e}")
        return {}


def load_config(path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration; invalid sections fall back to defaults."""
    raw = load_toml_config(path)
    try:
        return msgspec.convert(raw, AppConfig)
    except msgspec.ValidationError as e:
        warnings.warn(f"Invalid configuration, using defaults: {e}")
        return AppConfig()
