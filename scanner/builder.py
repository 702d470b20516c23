"""Analysis driver that orchestrates entry detection and the graph walk."""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Set

from graph.model import AnalysisState
from .discovery import DEFAULT_EXCLUDE_DIRS, detect_entries, detect_style, iter_files
from .imports import DEFAULT_EXTENSION
from .keys import DEFAULT_VOCABULARY
from .resolver import canonicalize
from .walker import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES, GraphWalker


logger = logging.getLogger(__name__)


def analyze(
    root: Path,
    entries: Optional[Iterable[Path]] = None,
    extension: str = DEFAULT_EXTENSION,
    vocabulary: Sequence[str] = DEFAULT_VOCABULARY,
    exclude_dirs: Optional[Set[str]] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
    include_orphans: bool = False,
) -> AnalysisState:
    """
    Analyze a configuration directory and return the collected state.

    Each entry is walked in order with the same walker, so a file reached
    from an earlier entry is reported as a revisit from later ones. Missing
    entries and dangling references are recorded, never raised.

    Args:
        root: Configuration directory.
        entries: Entry files (relative ones are taken from ``root``).
                 If None, ``flake.nix`` and ``configuration.nix`` are used
                 when present.
        extension: Configuration file extension.
        vocabulary: Option paths checked for conflicts.
        exclude_dirs: Directory names skipped by the orphan scan.
        max_depth: Deepest import level that is still visited.
        max_nodes: Maximum number of files visited.
        include_orphans: Also walk files under ``root`` that no entry reaches.

    Returns:
        AnalysisState for this run.
    """
    root = root.resolve()
    state = AnalysisState()

    if entries is None:
        entry_paths = detect_entries(root, extension)
    else:
        entry_paths = [entry if Path(entry).is_absolute() else root / entry for entry in entries]

    state.style = detect_style(entry_paths, extension)
    state.entries = [canonicalize(entry) for entry in entry_paths]
    logger.info("Analyzing %s (%s configuration, %d entries)", root, state.style, len(entry_paths))

    walker = GraphWalker(
        state=state,
        extension=extension,
        vocabulary=vocabulary,
        max_depth=max_depth,
        max_nodes=max_nodes,
    )

    for entry in entry_paths:
        walker.visit(entry)

    if include_orphans:
        for file_path in iter_files(
            root=root,
            include_ext={extension},
            exclude_dirs=exclude_dirs if exclude_dirs is not None else DEFAULT_EXCLUDE_DIRS,
        ):
            if canonicalize(file_path) in state:
                continue
            logger.info("Orphaned file: %s", file_path)
            state.orphans.append(canonicalize(file_path))
            walker.visit(file_path)

    logger.info("Analysis finished: %r", state)
    return state
