"""Analyzer settings, with optional overrides from a YAML file."""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from exporters.chain_log import DEFAULT_CHAIN_LOG
from scanner.discovery import DEFAULT_EXCLUDE_DIRS
from scanner.imports import DEFAULT_EXTENSION
from scanner.keys import DEFAULT_VOCABULARY
from scanner.walker import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES


DEFAULT_ROOT = Path("/etc/nixos")
SETTINGS_FILE_NAME = ".nixmap.yaml"


class SettingsError(Exception):
    """Raised when a settings file cannot be loaded or is invalid."""


@dataclass
class Settings:
    """
    Options for one analyzer run.

    - root: configuration directory to analyze
    - entries: entry files; empty means auto-detect flake.nix/configuration.nix
    - extension: configuration file extension
    - vocabulary: option paths checked for conflicts
    - exclude_dirs: directory names skipped by the orphan scan
    - max_depth / max_nodes: walk limits
    - chain_log: chain log path, None to skip writing it
    - orphans: also walk files no entry reaches
    - log_level / log_file: logging options
    """
    root: Path = DEFAULT_ROOT
    entries: List[str] = field(default_factory=list)
    extension: str = DEFAULT_EXTENSION
    vocabulary: List[str] = field(default_factory=lambda: list(DEFAULT_VOCABULARY))
    exclude_dirs: List[str] = field(default_factory=lambda: sorted(DEFAULT_EXCLUDE_DIRS))
    max_depth: int = DEFAULT_MAX_DEPTH
    max_nodes: int = DEFAULT_MAX_NODES
    chain_log: Optional[Path] = DEFAULT_CHAIN_LOG
    orphans: bool = False
    log_level: str = "WARNING"
    log_file: Optional[str] = None


_LIST_FIELDS = {"entries", "vocabulary", "exclude_dirs"}
_INT_FIELDS = {"max_depth", "max_nodes"}
_PATH_FIELDS = {"root", "chain_log"}
_NULLABLE_FIELDS = {"log_file"}


def settings_from_dict(data: Dict[str, Any], base: Optional[Settings] = None) -> Settings:
    """
    Build Settings from a mapping, starting from ``base`` or the defaults.

    Unknown keys and values of the wrong type raise SettingsError.
    """
    settings = base if base is not None else Settings()
    known = {f.name for f in fields(Settings)}

    for key, value in data.items():
        if key not in known:
            raise SettingsError(f"Unknown setting: {key}")

        if key in _LIST_FIELDS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise SettingsError(f"Setting '{key}' must be a list of strings")
        elif key in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise SettingsError(f"Setting '{key}' must be a non-negative integer")
        elif key in _PATH_FIELDS:
            if value is not None and not isinstance(value, str):
                raise SettingsError(f"Setting '{key}' must be a path")
            if value is None and key == "root":
                raise SettingsError("Setting 'root' cannot be empty")
            value = Path(value).expanduser() if value is not None else None
        elif key == "orphans":
            if not isinstance(value, bool):
                raise SettingsError("Setting 'orphans' must be true or false")
        elif value is None:
            if key not in _NULLABLE_FIELDS:
                raise SettingsError(f"Setting '{key}' cannot be empty")
        elif not isinstance(value, str):
            raise SettingsError(f"Setting '{key}' must be a string")

        setattr(settings, key, value)

    if not settings.extension.startswith("."):
        settings.extension = "." + settings.extension
    return settings


def load_settings(path: Optional[Path] = None, root: Optional[Path] = None) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        path: Explicit settings file; it must exist.
        root: Configuration directory; its ``.nixmap.yaml`` is used when no
              explicit file is given and one exists.

    Returns:
        Settings with file values applied over the defaults.

    Raises:
        SettingsError: If the file is missing, unreadable or invalid.
    """
    if path is None and root is not None:
        candidate = Path(root) / SETTINGS_FILE_NAME
        if candidate.is_file():
            path = candidate
    if path is None:
        return Settings()

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Cannot read settings file {path}: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a mapping")
    return settings_from_dict(data)
