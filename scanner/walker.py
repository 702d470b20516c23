"""Depth-first import graph walker."""

import logging
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Tuple

from graph.model import (
    AnalysisState,
    DiagnosticKind,
    ImportEdge,
    ImportReference,
    TraversalEvent,
    VisitResult,
)
from .imports import DEFAULT_EXTENSION, scan_imports
from .keys import DEFAULT_VOCABULARY, scan_keys
from .resolver import canonicalize, resolve_reference


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_NODES = 10000


class _Frame(NamedTuple):
    """A pending visit on the walker's explicit stack."""

    path: Optional[Path]
    depth: int
    parent: Optional[Path]
    ancestors: Tuple[Path, ...]
    raw: str
    line: int = 0
    reference: Optional[ImportReference] = None


class GraphWalker:
    """
    Visits configuration files and follows their imports.

    Every file is visited at most once per AnalysisState: a target that was
    already visited is recorded as a revisit event (and as a cycle when it
    lies on the current import chain) but is never expanded again. This
    bounds the walk to one visit per distinct file, whatever the number of
    edges or cycles.

    The walk uses an explicit stack and produces the same pre-order as a
    recursive walk, so deep trees are limited only by ``max_depth``.
    """

    def __init__(
        self,
        state: Optional[AnalysisState] = None,
        extension: str = DEFAULT_EXTENSION,
        vocabulary: Sequence[str] = DEFAULT_VOCABULARY,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_nodes: int = DEFAULT_MAX_NODES,
    ):
        self.state = state if state is not None else AnalysisState()
        self.extension = extension
        self.vocabulary = tuple(vocabulary)
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    def visit(self, path: Path, depth: int = 0, parent: Optional[Path] = None) -> VisitResult:
        """
        Visit a file and, transitively, everything it imports.

        Args:
            path: File to visit; relative paths are taken from the cwd.
            depth: Discovery depth of the file.
            parent: File that referenced this one, None for a root entry.

        Returns:
            The VisitResult for ``path`` itself.
        """
        stack: List[_Frame] = [_Frame(Path(path), depth, parent, (), str(path))]
        first: Optional[VisitResult] = None

        while stack:
            frame = stack.pop()
            result, children = self._visit_frame(frame)
            if first is None:
                first = result
            # Reversed so the first import in the source is expanded first
            stack.extend(reversed(children))

        return first if first is not None else VisitResult.MISSING

    def _visit_frame(self, frame: _Frame) -> Tuple[Optional[VisitResult], List[_Frame]]:
        state = self.state
        reference = frame.reference

        if reference is not None and not reference.kind.traversable:
            state.events.append(
                TraversalEvent(
                    depth=frame.depth,
                    raw=frame.raw,
                    parent=frame.parent,
                    kind=reference.kind,
                )
            )
            return None, []

        node_path = canonicalize(frame.path)
        kind = reference.kind if reference is not None else None

        def record(result: VisitResult, cycle: bool = False) -> None:
            state.events.append(
                TraversalEvent(
                    depth=frame.depth,
                    raw=frame.raw,
                    path=node_path,
                    parent=frame.parent,
                    result=result,
                    kind=kind,
                    cycle=cycle,
                )
            )

        if state.is_visited(node_path):
            cycle = node_path in frame.ancestors
            record(VisitResult.ALREADY_VISITED, cycle=cycle)
            if cycle:
                logger.info("Import cycle: %s -> %s", frame.parent, node_path)
                state.add_diagnostic(
                    DiagnosticKind.CYCLE_DETECTED,
                    f"{frame.raw} is already on the import chain",
                    path=node_path,
                    source=frame.parent,
                    line=frame.line,
                )
            else:
                logger.debug("Already visited: %s", node_path)
            return VisitResult.ALREADY_VISITED, []

        if frame.depth > self.max_depth or len(state.nodes) >= self.max_nodes:
            record(VisitResult.DEPTH_LIMIT)
            logger.warning("Not visiting %s: walk limits reached", node_path)
            state.add_diagnostic(
                DiagnosticKind.LIMIT_REACHED,
                f"depth {frame.depth} or node count exceeds the configured limits",
                path=node_path,
                source=frame.parent,
                line=frame.line,
            )
            return VisitResult.DEPTH_LIMIT, []

        if not node_path.exists():
            record(VisitResult.MISSING)
            state.add_unresolved(node_path, exists=False)
            if frame.parent is None:
                logger.info("Entry file not found: %s", node_path)
                state.add_diagnostic(DiagnosticKind.MISSING_FILE, "file not found", path=node_path)
            else:
                logger.info("Dangling reference %s in %s", frame.raw, frame.parent)
                state.add_diagnostic(
                    DiagnosticKind.DANGLING_REFERENCE,
                    f"{frame.raw} does not exist",
                    path=node_path,
                    source=frame.parent,
                    line=frame.line,
                )
            return VisitResult.MISSING, []

        try:
            content = node_path.read_bytes()
        except OSError as e:
            record(VisitResult.UNREADABLE)
            state.add_unresolved(node_path, exists=True)
            logger.warning("Cannot read %s: %s", node_path, e)
            state.add_diagnostic(
                DiagnosticKind.UNREADABLE_FILE,
                str(e.strerror or e),
                path=node_path,
                source=frame.parent,
                line=frame.line,
            )
            return VisitResult.UNREADABLE, []

        try:
            text: Optional[str] = content.decode("utf-8")
        except UnicodeDecodeError:
            text = None
            state.add_diagnostic(
                DiagnosticKind.UNDECODABLE_CONTENT,
                "content is not valid UTF-8; imports and keys not scanned",
                path=node_path,
            )

        state.add_node(node_path, text, frame.depth, frame.parent)
        record(VisitResult.VISITED)
        logger.debug("Visiting %s (depth %d)", node_path, frame.depth)

        state.occurrences.extend(
            scan_keys(content if text is None else text, node_path, self.vocabulary)
        )
        if text is None:
            return VisitResult.VISITED, []

        scan = scan_imports(text, self.extension)
        for lineno in scan.skipped:
            logger.warning("Skipping unparseable import line %s:%d", node_path, lineno)
            state.add_diagnostic(
                DiagnosticKind.UNPARSEABLE_IMPORT_LINE,
                "unterminated string in import list",
                path=node_path,
                line=lineno,
            )

        ancestors = frame.ancestors + (node_path,)
        children: List[_Frame] = []
        for ref in scan.references:
            resolved = resolve_reference(node_path, ref)
            state.edges.append(
                ImportEdge(
                    source=node_path,
                    target=ref.raw,
                    kind=ref.kind,
                    resolved=resolved,
                    line=ref.line,
                )
            )
            children.append(
                _Frame(
                    path=resolved,
                    depth=frame.depth + 1,
                    parent=node_path,
                    ancestors=ancestors,
                    raw=ref.raw,
                    line=ref.line,
                    reference=ref,
                )
            )

        return VisitResult.VISITED, children
