"""JSON exporter for analysis results (machine-friendly format)."""

import json
from pathlib import Path
from typing import Any, Dict, List

from graph.model import AnalysisState
from scanner.resolver import display_path
from .summary import summarize


def to_json(
    state: AnalysisState,
    root: Path,
    indent: int = 2,
) -> str:
    """
    Convert an analysis to JSON format.

    Args:
        state: Completed analysis.
        root: Configuration directory for relative paths.
        indent: JSON indentation level.

    Returns:
        JSON string with nodes, edges and the summary.
    """
    nodes: List[Dict[str, Any]] = []
    for node in state.discovery_order():
        nodes.append({
            "path": display_path(node.path, root),
            "depth": node.depth,
            "order": node.order,
            "parent": display_path(node.parent, root) if node.parent else None,
        })

    edges: List[Dict[str, Any]] = []
    for edge in state.edges:
        item: Dict[str, Any] = {
            "source": display_path(edge.source, root),
            "target": edge.target,
            "kind": edge.kind.value,
            "line": edge.line,
        }
        if edge.resolved is not None:
            item["resolved"] = display_path(edge.resolved, root)
            item["missing"] = edge.resolved in state.unresolved and not state.unresolved[edge.resolved].exists
        edges.append(item)

    data: Dict[str, Any] = {
        "nodes": nodes,
        "edges": edges,
    }
    data.update(summarize(state, root))

    return json.dumps(data, indent=indent)
