"""Scanner module for import extraction, key scanning and the graph walk."""

from .discovery import iter_files, detect_entries, detect_style
from .imports import extract_imports, scan_imports, classify_import
from .keys import scan_keys, DEFAULT_VOCABULARY
from .resolver import canonicalize, resolve_reference
from .walker import GraphWalker
from .builder import analyze

__all__ = [
    "iter_files",
    "detect_entries",
    "detect_style",
    "extract_imports",
    "scan_imports",
    "classify_import",
    "scan_keys",
    "DEFAULT_VOCABULARY",
    "canonicalize",
    "resolve_reference",
    "GraphWalker",
    "analyze",
]
