"""Path resolution utilities for mapping import references to files."""

import os
from pathlib import Path
from typing import Optional

from graph.model import ImportKind, ImportReference


def canonicalize(path: Path) -> Path:
    """
    Return the node identity key for a path.

    Symlinks and ``..`` segments are resolved; the path does not need to
    exist.

    Args:
        path: Any file path.

    Returns:
        Absolute, normalized Path.
    """
    try:
        return Path(path).resolve()
    except (OSError, RuntimeError):
        # Symlink loops cannot be resolved; fall back to a lexical normalization
        return Path(os.path.normpath(os.path.abspath(path)))


def resolve_reference(source_file: Path, reference: ImportReference) -> Optional[Path]:
    """
    Resolve an import reference to a candidate file path.

    Relative references are resolved against the directory of the file that
    contains them; absolute references are used as-is. External and dynamic
    references never resolve to a path.

    Args:
        source_file: The file containing the reference.
        reference: The extracted reference.

    Returns:
        Canonical Path of the target (which may not exist), or None.
    """
    if reference.kind == ImportKind.RELATIVE:
        return canonicalize(source_file.parent / reference.raw)
    if reference.kind == ImportKind.ABSOLUTE:
        return canonicalize(Path(reference.raw))
    return None


def get_relative_path(file_path: Path, root: Path) -> Path:
    """
    Get the path relative to root.

    Args:
        file_path: The file path to make relative.
        root: The root directory.

    Returns:
        Relative path, or the original path if it can't be made relative.
    """
    try:
        return file_path.resolve().relative_to(root.resolve())
    except (ValueError, OSError, RuntimeError):
        return file_path


def display_path(file_path: Path, root: Path) -> str:
    """Get the display string for a path, relative to root where possible."""
    return str(get_relative_path(file_path, root)).replace("\\", "/")
