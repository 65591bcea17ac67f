"""
Configuration for branchtree.

All tunable parameters in one place. Loaded from:
1. Defaults (this file)
2. Config file (~/.config/branchtree/config.toml) if exists
3. Environment variables (BRANCHTREE_*) override file
4. CLI flags override everything
"""

from __future__ import annotations

import contextlib
import logging
import os
import tomllib  # stdlib in 3.11+
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _default_storage_path() -> str:
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return str(base / "branchtree" / "document.json")


@dataclass
class EditorConfig:
    """Editor behaviour."""
    history_limit: int = 100  # undo/redo snapshots kept per direction
    root_name: str = "main"  # name of the root in a fresh document


@dataclass
class StorageConfig:
    """Where the current document is persisted."""
    path: str = field(default_factory=_default_storage_path)


@dataclass
class ExportConfig:
    """Serializer settings."""
    default_format: str = "ascii"
    comment_gap: int = 4  # spaces between the widest label and the comment column
    fence_mermaid: bool = False  # wrap Mermaid output in a ```mermaid block


@dataclass
class Config:
    """Root config with all settings."""
    editor: EditorConfig = field(default_factory=EditorConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    export: ExportConfig = field(default_factory=ExportConfig)


def get_config_path() -> Path:
    """Get config file path, respecting XDG."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "branchtree" / "config.toml"
    return Path.home() / ".config" / "branchtree" / "config.toml"


def load_config() -> Config:
    """Load config from file if exists, else return defaults."""
    config = Config()
    path = get_config_path()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            config = _apply_toml(config, data)
        except (OSError, tomllib.TOMLDecodeError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", path, e)

    # env var overrides
    config = _apply_env(config)

    return config


def _apply_toml(config: Config, data: dict) -> Config:
    """Apply toml data to config."""
    if "editor" in data:
        e = data["editor"]
        if "history_limit" in e:
            config.editor.history_limit = int(e["history_limit"])
        if "root_name" in e:
            config.editor.root_name = str(e["root_name"])

    if "storage" in data:
        s = data["storage"]
        if "path" in s:
            config.storage.path = str(Path(s["path"]).expanduser())

    if "export" in data:
        x = data["export"]
        if "default_format" in x:
            config.export.default_format = str(x["default_format"])
        if "comment_gap" in x:
            config.export.comment_gap = int(x["comment_gap"])
        if "fence_mermaid" in x:
            config.export.fence_mermaid = bool(x["fence_mermaid"])

    return config


def _apply_env(config: Config) -> Config:
    """Apply environment variable overrides."""
    env_map: dict[str, tuple[str, str, type]] = {
        "BRANCHTREE_HISTORY_LIMIT": ("editor", "history_limit", int),
        "BRANCHTREE_ROOT_NAME": ("editor", "root_name", str),
        "BRANCHTREE_STORAGE_PATH": ("storage", "path", str),
        "BRANCHTREE_DEFAULT_FORMAT": ("export", "default_format", str),
        "BRANCHTREE_COMMENT_GAP": ("export", "comment_gap", int),
        "BRANCHTREE_FENCE_MERMAID": ("export", "fence_mermaid", bool),
    }

    for env_key, (section, attr, conv) in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            with contextlib.suppress(ValueError, AttributeError):
                # Bool needs special handling: "true", "1", "yes" -> True
                converted = val.lower() in ("true", "1", "yes") if conv is bool else conv(val)
                setattr(getattr(config, section), attr, converted)

    return config


# Module-level config instance, loaded once on first use
_config: Config | None = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() reloads it."""
    global _config
    _config = None
