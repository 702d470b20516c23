"""Flat import chain log, one file per line in discovery order."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from graph.model import AnalysisState


DEFAULT_CHAIN_LOG = Path("/tmp/nixos-import-chain.txt")
CHAIN_LOG_TITLE = "# NixOS Configuration Import Chain"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def generation_timestamp() -> str:
    """
    Return the timestamp written into the chain log header.

    ``SOURCE_DATE_EPOCH`` pins the timestamp so that runs over an unchanged
    tree produce identical files.
    """
    epoch = os.environ.get("SOURCE_DATE_EPOCH")
    if epoch:
        try:
            return datetime.fromtimestamp(int(epoch), tz=timezone.utc).strftime(TIMESTAMP_FORMAT)
        except (ValueError, OverflowError, OSError):
            pass
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def to_chain_log(state: AnalysisState, generated: Optional[str] = None) -> str:
    """
    Render the chain log.

    Args:
        state: Completed analysis.
        generated: Header timestamp; defaults to generation_timestamp().

    Returns:
        Two header lines followed by one absolute path per visited file.
    """
    if generated is None:
        generated = generation_timestamp()
    lines = [CHAIN_LOG_TITLE, f"# Generated: {generated}"]
    lines.extend(str(node.path) for node in state.discovery_order())
    return "\n".join(lines) + "\n"


def write_chain_log(
    state: AnalysisState,
    path: Path = DEFAULT_CHAIN_LOG,
    generated: Optional[str] = None,
) -> Path:
    """
    Write the chain log to ``path``.

    Raises:
        OSError: If the file cannot be written.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_chain_log(state, generated), encoding="utf-8")
    return path
