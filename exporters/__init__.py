"""Exporters for rendering analysis results in various output formats."""

from .tree_exporter import to_tree
from .summary import to_summary, summarize
from .chain_log import to_chain_log, write_chain_log, DEFAULT_CHAIN_LOG
from .json_exporter import to_json

__all__ = [
    "to_tree",
    "to_summary",
    "summarize",
    "to_chain_log",
    "write_chain_log",
    "DEFAULT_CHAIN_LOG",
    "to_json",
]
