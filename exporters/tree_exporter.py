"""Pre-order tree exporter for import traversals."""

from pathlib import Path
from typing import Dict, List

from graph.model import AnalysisState, ImportKind, TraversalEvent, VisitResult
from scanner.resolver import display_path


# Unicode tree characters
UNICODE_BRANCH = "├── "
UNICODE_LAST = "└── "
UNICODE_VERTICAL = "│   "
UNICODE_SPACE = "    "

# ASCII fallback characters
ASCII_BRANCH = "|-- "
ASCII_LAST = "\\-- "
ASCII_VERTICAL = "|   "
ASCII_SPACE = "    "

RESULT_MARKERS = {
    VisitResult.VISITED: "",
    VisitResult.ALREADY_VISITED: " [REVISIT]",
    VisitResult.MISSING: " [MISSING]",
    VisitResult.UNREADABLE: " [UNREADABLE]",
    VisitResult.DEPTH_LIMIT: " [DEPTH LIMIT]",
}

KIND_MARKERS = {
    ImportKind.EXTERNAL: " [CHANNEL]",
    ImportKind.DYNAMIC: " [DYNAMIC]",
}

MAX_EXPRESSION_WIDTH = 60


def to_tree(
    state: AnalysisState,
    root: Path,
    style: str = "tree",
) -> str:
    """
    Render the traversal of an analysis as an indented tree.

    There is one line per traversal event, in the order the walker produced
    them. A file reached again is shown once more with a revisit (or cycle)
    marker, without repeating its subtree.

    Args:
        state: Completed analysis.
        root: Configuration directory, used for relative display paths.
        style: Output style - "tree" (Unicode) or "ascii" (pure ASCII).

    Returns:
        Tree string.
    """
    if style == "ascii":
        branch, last, vertical, space = ASCII_BRANCH, ASCII_LAST, ASCII_VERTICAL, ASCII_SPACE
    else:
        branch, last, vertical, space = UNICODE_BRANCH, UNICODE_LAST, UNICODE_VERTICAL, UNICODE_SPACE

    events = state.events
    is_last = _last_sibling_flags(events)

    lines: List[str] = []
    # last_at[d] is True when the most recent event at depth d closes its level
    last_at: Dict[int, bool] = {}

    for index, event in enumerate(events):
        label = _label(event, root)
        depth = event.depth

        if depth == 0:
            if lines:
                lines.append("")
            lines.append(label)
        else:
            prefix = "".join(
                space if last_at.get(level, True) else vertical
                for level in range(1, depth)
            )
            connector = last if is_last[index] else branch
            lines.append(f"{prefix}{connector}{label}")

        last_at[depth] = is_last[index]

    return "\n".join(lines)


def _last_sibling_flags(events: List[TraversalEvent]) -> List[bool]:
    """For each event, whether no later sibling follows it under the same parent."""
    flags = [True] * len(events)
    sibling_follows: Dict[int, bool] = {}
    for index in range(len(events) - 1, -1, -1):
        depth = events[index].depth
        flags[index] = not sibling_follows.get(depth, False)
        sibling_follows[depth] = True
        for deeper in [d for d in sibling_follows if d > depth]:
            del sibling_follows[deeper]
    return flags


def _label(event: TraversalEvent, root: Path) -> str:
    """Build the text of one tree line."""
    if event.result is None:
        raw = event.raw
        if len(raw) > MAX_EXPRESSION_WIDTH:
            raw = raw[:MAX_EXPRESSION_WIDTH - 3] + "..."
        return f"{raw}{KIND_MARKERS.get(event.kind, '')}"

    name = display_path(event.path, root) if event.path is not None else event.raw
    if event.cycle:
        marker = " [CYCLE]"
    else:
        marker = RESULT_MARKERS[event.result]
    if event.result == VisitResult.MISSING and event.parent is not None:
        return f"{event.raw}{marker}"
    return f"{name}{marker}"
