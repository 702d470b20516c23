"""Graph data model for configuration import analysis."""

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional


class ImportKind(str, Enum):
    """How an import token was classified."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    EXTERNAL = "external"
    DYNAMIC = "dynamic"

    @property
    def traversable(self) -> bool:
        return self in (ImportKind.RELATIVE, ImportKind.ABSOLUTE)


class VisitResult(str, Enum):
    """Outcome of a single walker visit."""

    VISITED = "visited"
    ALREADY_VISITED = "already-visited"
    MISSING = "missing"
    UNREADABLE = "unreadable"
    DEPTH_LIMIT = "depth-limit"


class OccurrenceKind(str, Enum):
    """How a recognized key is used on a line."""

    ENABLED = "enabled"
    PACKAGE_ASSIGNMENT = "package-assignment"
    REFERENCE = "reference"

    @property
    def defines(self) -> bool:
        """Whether the line sets the option rather than only mentioning it."""
        return self in (OccurrenceKind.ENABLED, OccurrenceKind.PACKAGE_ASSIGNMENT)


class DiagnosticKind(str, Enum):
    """Problems recorded during analysis. None of them stop the walk."""

    MISSING_FILE = "MissingFile"
    UNREADABLE_FILE = "UnreadableFile"
    UNPARSEABLE_IMPORT_LINE = "UnparseableImportLine"
    DANGLING_REFERENCE = "DanglingReference"
    CYCLE_DETECTED = "CycleDetected"
    UNDECODABLE_CONTENT = "UndecodableContent"
    LIMIT_REACHED = "LimitReached"


@dataclass
class Node:
    """A configuration file in the dependency graph."""

    path: Path
    exists: bool = True
    text: Optional[str] = None
    depth: int = 0
    parent: Optional[Path] = None
    order: int = -1


@dataclass(frozen=True)
class ImportReference:
    """A single import token as it appears in a file."""

    raw: str
    kind: ImportKind
    line: int
    section: str = "imports"


@dataclass(frozen=True)
class ImportEdge:
    """A reference from one node to an import target."""

    source: Path
    target: str
    kind: ImportKind
    resolved: Optional[Path] = None
    line: int = 0


@dataclass(frozen=True)
class KeyOccurrence:
    """A recognized configuration key found on a line of a file."""

    key: str
    path: Path
    line: int
    kind: OccurrenceKind


@dataclass
class ConflictRecord:
    """A key that is used in more than one reachable file."""

    key: str
    occurrences: List[KeyOccurrence] = field(default_factory=list)

    @property
    def paths(self) -> List[Path]:
        """Distinct contributing files in first-seen order."""
        seen: List[Path] = []
        for occurrence in self.occurrences:
            if occurrence.path not in seen:
                seen.append(occurrence.path)
        return seen


@dataclass(frozen=True)
class TraversalEvent:
    """
    One line of the discovery tree.

    For traversable targets ``result`` holds the walker outcome and ``path`` the
    canonical file. External and dynamic references carry ``kind`` and the
    ``raw`` token instead, since they are never resolved.
    """

    depth: int
    raw: str
    path: Optional[Path] = None
    parent: Optional[Path] = None
    result: Optional[VisitResult] = None
    kind: Optional[ImportKind] = None
    cycle: bool = False


@dataclass(frozen=True)
class Diagnostic:
    """A recorded problem; see DiagnosticKind."""

    kind: DiagnosticKind
    message: str
    path: Optional[Path] = None
    source: Optional[Path] = None
    line: int = 0


def find_conflicts(occurrences: Iterable[KeyOccurrence]) -> List[ConflictRecord]:
    """
    Group key occurrences into conflict records.

    A key is conflicting when it is enabled or package-assigned in at least
    two distinct files; plain references never make a conflict on their own.
    Records are returned in the order their keys were first seen, and each
    record lists all occurrences of the key in traversal order.

    Args:
        occurrences: Key occurrences in traversal order.

    Returns:
        List of ConflictRecord objects.
    """
    grouped: Dict[str, List[KeyOccurrence]] = OrderedDict()
    for occurrence in occurrences:
        grouped.setdefault(occurrence.key, []).append(occurrence)

    records: List[ConflictRecord] = []
    for key, items in grouped.items():
        if len({item.path for item in items if item.kind.defines}) >= 2:
            records.append(ConflictRecord(key=key, occurrences=list(items)))
    return records


class AnalysisState:
    """
    Everything collected during a single analysis run.

    Nodes are keyed by canonical path, so membership checks are O(1) and
    iteration order is discovery order. A fresh instance is created for each
    run; nothing is shared between runs.
    """

    def __init__(self):
        self.nodes: "OrderedDict[Path, Node]" = OrderedDict()
        self.unresolved: Dict[Path, Node] = {}
        self.edges: List[ImportEdge] = []
        self.occurrences: List[KeyOccurrence] = []
        self.events: List[TraversalEvent] = []
        self.diagnostics: List[Diagnostic] = []
        self.entries: List[Path] = []
        self.orphans: List[Path] = []
        self.style: str = "unknown"

    def is_visited(self, path: Path) -> bool:
        """Check whether a canonical path has already been visited."""
        return path in self.nodes

    def add_node(self, path: Path, text: Optional[str], depth: int, parent: Optional[Path]) -> Node:
        """Register a newly visited node and assign its discovery index."""
        node = Node(
            path=path,
            exists=True,
            text=text,
            depth=depth,
            parent=parent,
            order=len(self.nodes),
        )
        self.nodes[path] = node
        return node

    def add_unresolved(self, path: Path, exists: bool) -> None:
        """Remember a target that could not be visited (missing or unreadable)."""
        if path not in self.unresolved:
            self.unresolved[path] = Node(path=path, exists=exists)

    def add_diagnostic(self, kind: DiagnosticKind, message: str, **kwargs) -> Diagnostic:
        diagnostic = Diagnostic(kind=kind, message=message, **kwargs)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def discovery_order(self) -> List[Node]:
        """Return visited nodes in the order they were first reached."""
        return list(self.nodes.values())

    def diagnostics_of(self, *kinds: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind in kinds]

    def dangling(self) -> List[Diagnostic]:
        """Return dangling references and missing entry files."""
        return self.diagnostics_of(DiagnosticKind.DANGLING_REFERENCE, DiagnosticKind.MISSING_FILE)

    def cycles(self) -> List[Diagnostic]:
        return self.diagnostics_of(DiagnosticKind.CYCLE_DETECTED)

    def warnings(self) -> List[Diagnostic]:
        """Return diagnostics that are neither dangling references nor cycles."""
        return self.diagnostics_of(
            DiagnosticKind.UNREADABLE_FILE,
            DiagnosticKind.UNPARSEABLE_IMPORT_LINE,
            DiagnosticKind.UNDECODABLE_CONTENT,
            DiagnosticKind.LIMIT_REACHED,
        )

    def revisits(self) -> List[TraversalEvent]:
        """Return traversal events that reached an already visited node."""
        return [e for e in self.events if e.result == VisitResult.ALREADY_VISITED]

    def conflicts(self) -> List[ConflictRecord]:
        return find_conflicts(self.occurrences)

    def iter_edges(self, kind: Optional[ImportKind] = None) -> Iterable[ImportEdge]:
        """Iterate over edges, optionally restricted to one import kind."""
        for edge in self.edges:
            if kind is None or edge.kind == kind:
                yield edge

    def __len__(self) -> int:
        """Return the number of visited nodes."""
        return len(self.nodes)

    def __contains__(self, path: Path) -> bool:
        return path in self.nodes

    def __repr__(self) -> str:
        return (
            f"AnalysisState(nodes={len(self.nodes)}, edges={len(self.edges)}, "
            f"dangling={len(self.dangling())}, cycles={len(self.cycles())}, "
            f"conflicts={len(self.conflicts())})"
        )
