"""Entry point detection and file discovery for configuration directories."""

from pathlib import Path
from typing import Iterator, List, Optional, Set

from .imports import DEFAULT_EXTENSION


DEFAULT_EXCLUDE_DIRS = {
    ".git", ".hg", ".svn",
    "node_modules", "__pycache__",
    ".direnv", "result",
    ".idea", ".vscode",
    "*.bak", "*.backup",
}

# Conventional entry files, checked in this order
ENTRY_STEMS = ("flake", "configuration")

REBUILD_COMMANDS = {
    "flake": "nixos-rebuild switch --flake .",
    "traditional": "nixos-rebuild switch",
    "mixed": "nixos-rebuild switch --flake .",
}


def detect_entries(root: Path, extension: str = DEFAULT_EXTENSION) -> List[Path]:
    """
    Find the conventional entry files in a configuration directory.

    A flake and a traditional configuration file may coexist; both are
    returned, flake first.

    Args:
        root: Configuration directory.
        extension: Configuration file extension.

    Returns:
        Existing entry files.
    """
    entries = []
    for stem in ENTRY_STEMS:
        candidate = root / f"{stem}{extension}"
        if candidate.is_file():
            entries.append(candidate)
    return entries


def detect_style(entries: List[Path], extension: str = DEFAULT_EXTENSION) -> str:
    """
    Name the configuration style implied by a set of entry files.

    Returns:
        "flake", "traditional", "mixed", "custom" or "unknown".
    """
    names = {entry.name for entry in entries}
    has_flake = f"flake{extension}" in names
    has_config = f"configuration{extension}" in names
    if has_flake and has_config:
        return "mixed"
    if has_flake:
        return "flake"
    if has_config:
        return "traditional"
    if entries:
        return "custom"
    return "unknown"


def iter_files(
    root: Path,
    include_ext: Optional[Set[str]] = None,
    exclude_dirs: Optional[Set[str]] = None,
    max_depth: Optional[int] = None,
) -> Iterator[Path]:
    """
    Iterate over files in a directory tree.

    Args:
        root: Root directory to scan.
        include_ext: Set of file extensions to include (e.g., {'.nix'}).
                    If None, uses the default configuration extension.
        exclude_dirs: Set of directory names to skip.
                     If None, uses DEFAULT_EXCLUDE_DIRS.
        max_depth: Maximum depth to descend. None means unlimited.

    Yields:
        Path objects for matching files, in sorted order.
    """
    if include_ext is None:
        include_ext = {DEFAULT_EXTENSION}
    include_ext = {ext.lower() for ext in include_ext}
    if exclude_dirs is None:
        exclude_dirs = DEFAULT_EXCLUDE_DIRS

    root = root.resolve()

    def _walk(current: Path, depth: int) -> Iterator[Path]:
        if max_depth is not None and depth > max_depth:
            return

        try:
            entries = sorted(current.iterdir())
        except PermissionError:
            return

        for entry in entries:
            if entry.is_dir():
                if entry.name in exclude_dirs:
                    continue
                # Glob-style suffix patterns such as "*.bak"
                if any(entry.name.endswith(pat.lstrip("*")) for pat in exclude_dirs if pat.startswith("*")):
                    continue
                yield from _walk(entry, depth + 1)
            elif entry.is_file():
                if entry.suffix.lower() in include_ext:
                    yield entry

    yield from _walk(root, 0)
