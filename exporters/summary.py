"""Conflict and analysis summary."""

from pathlib import Path
from typing import Any, Dict, List

from graph.model import AnalysisState, ConflictRecord, Diagnostic, ImportKind
from scanner.discovery import REBUILD_COMMANDS
from scanner.resolver import display_path


def summarize(state: AnalysisState, root: Path) -> Dict[str, Any]:
    """
    Collect the headline numbers and records of an analysis.

    Args:
        state: Completed analysis.
        root: Configuration directory, used for relative display paths.

    Returns:
        Dictionary with counts, conflicts and diagnostics.
    """
    return {
        "style": state.style,
        "rebuild_command": REBUILD_COMMANDS.get(state.style),
        "entries": [display_path(entry, root) for entry in state.entries],
        "orphans": [display_path(orphan, root) for orphan in state.orphans],
        "counts": {
            "nodes": len(state),
            "edges": len(state.edges),
            "channel_imports": sum(1 for _ in state.iter_edges(ImportKind.EXTERNAL)),
            "dynamic_imports": sum(1 for _ in state.iter_edges(ImportKind.DYNAMIC)),
            "revisits": len(state.revisits()),
            "dangling": len(state.dangling()),
            "cycles": len(state.cycles()),
            "warnings": len(state.warnings()),
            "conflicts": len(state.conflicts()),
        },
        "conflicts": [_conflict_dict(record, root) for record in state.conflicts()],
        "diagnostics": [_diagnostic_dict(d, root) for d in state.diagnostics],
    }


def to_summary(state: AnalysisState, root: Path) -> str:
    """
    Render the analysis summary as text.

    Args:
        state: Completed analysis.
        root: Configuration directory, used for relative display paths.

    Returns:
        Multi-line summary string.
    """
    summary = summarize(state, root)
    counts = summary["counts"]

    lines: List[str] = ["Analysis summary", "================"]
    style_line = f"Configuration style: {summary['style']}"
    if summary["rebuild_command"]:
        style_line += f" (rebuild with: {summary['rebuild_command']})"
    lines.append(style_line)
    lines.append(f"Entry files: {len(summary['entries'])}")
    if summary["orphans"]:
        lines.append(f"Orphaned files walked: {len(summary['orphans'])}")
    lines.append(f"Files processed: {counts['nodes']}")
    lines.append(
        f"Imports found: {counts['edges']} "
        f"({counts['channel_imports']} channel, {counts['dynamic_imports']} dynamic)"
    )
    lines.append(f"Revisits: {counts['revisits']}")
    lines.append(f"Dangling references: {counts['dangling']}")
    lines.append(f"Cycles: {counts['cycles']}")
    lines.append(f"Warnings: {counts['warnings']}")
    lines.append(f"Conflicts: {counts['conflicts']}")

    for record in state.conflicts():
        lines.append(f"  {format_conflict(record, root)}")

    problems = state.dangling() + state.cycles() + state.warnings()
    if problems:
        lines.append("")
        lines.append("Diagnostics:")
        for diagnostic in problems:
            lines.append(f"  {format_diagnostic(diagnostic, root)}")

    return "\n".join(lines)


def format_conflict(record: ConflictRecord, root: Path) -> str:
    """Format a conflict as ``key: file:line (kind), ...``."""
    parts = [
        f"{display_path(o.path, root)}:{o.line} ({o.kind.value})"
        for o in record.occurrences
    ]
    return f"{record.key}: " + ", ".join(parts)


def format_diagnostic(diagnostic: Diagnostic, root: Path) -> str:
    location = ""
    if diagnostic.source is not None:
        location = display_path(diagnostic.source, root)
        if diagnostic.line:
            location += f":{diagnostic.line}"
    elif diagnostic.path is not None:
        location = display_path(diagnostic.path, root)
        if diagnostic.line:
            location += f":{diagnostic.line}"
    return f"{diagnostic.kind.value} {location}: {diagnostic.message}"


def _conflict_dict(record: ConflictRecord, root: Path) -> Dict[str, Any]:
    return {
        "key": record.key,
        "files": [display_path(path, root) for path in record.paths],
        "occurrences": [
            {"file": display_path(o.path, root), "line": o.line, "kind": o.kind.value}
            for o in record.occurrences
        ],
    }


def _diagnostic_dict(diagnostic: Diagnostic, root: Path) -> Dict[str, Any]:
    return {
        "kind": diagnostic.kind.value,
        "message": diagnostic.message,
        "path": display_path(diagnostic.path, root) if diagnostic.path else None,
        "source": display_path(diagnostic.source, root) if diagnostic.source else None,
        "line": diagnostic.line,
    }
