"""Recognized-key scanning for conflict detection."""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from graph.model import KeyOccurrence, OccurrenceKind
from .imports import strip_comment


logger = logging.getLogger(__name__)

# Option paths whose definition in more than one file is worth flagging
DEFAULT_VOCABULARY = (
    "services.nginx",
    "services.apache",
    "services.httpd",
    "services.phpfpm",
    "services.mysql",
    "services.mariadb",
    "services.postgresql",
    "services.redis",
    "services.memcached",
    "networking.hosts",
    "networking.extraHosts",
)

ENABLE_PATTERN = re.compile(r"\benable\s*=\s*[^;]*\btrue\b")
PACKAGE_PATTERN = re.compile(r"\bpackage\s*=")
BLOCK_OPEN_PATTERN = re.compile(r"\s*=\s*\{")
BLOCK_ENABLE_PATTERN = re.compile(r"^\s*enable\s*=\s*[^;]*\btrue\b")
BLOCK_PACKAGE_PATTERN = re.compile(r"^\s*package\s*=")


def key_pattern(key: str) -> "re.Pattern[str]":
    """Build a regex matching ``key`` as a whole option path prefix."""
    return re.compile(r"(?<![\w.-])" + re.escape(key) + r"(?![\w-])")


def classify_assignment(rest: str) -> OccurrenceKind:
    """
    Classify the text that follows a key on its line.

    Args:
        rest: Remainder of the line after the key match.

    Returns:
        The OccurrenceKind for the line.
    """
    if ENABLE_PATTERN.search(rest):
        return OccurrenceKind.ENABLED
    if PACKAGE_PATTERN.search(rest):
        return OccurrenceKind.PACKAGE_ASSIGNMENT
    return OccurrenceKind.REFERENCE


def scan_keys(
    content: Union[str, bytes],
    path: Path,
    vocabulary: Sequence[str] = DEFAULT_VOCABULARY,
) -> List[KeyOccurrence]:
    """
    Find every occurrence of the recognized keys in a file.

    Each matching line yields one occurrence per key. A ``key = {`` line also
    opens an attribute block: ``enable`` and ``package`` assignments at the
    top level of that block are recorded as occurrences of the key on their
    own lines.

    Args:
        content: File text, or raw bytes which are decoded as UTF-8.
        path: Identity of the file the content belongs to.
        vocabulary: Option paths to look for.

    Returns:
        List of KeyOccurrence objects in line order.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping key scan of %s: content is not valid UTF-8", path)
            return []

    patterns: Dict[str, "re.Pattern[str]"] = {key: key_pattern(key) for key in vocabulary}
    occurrences: List[KeyOccurrence] = []
    # Open attribute blocks as [key, brace depth]
    blocks: List[List] = []

    for lineno, raw_line in enumerate(content.splitlines(), start=1):
        line = strip_comment(raw_line)
        if not line.strip():
            continue

        for key, depth in blocks:
            if depth != 1:
                continue
            kind: Optional[OccurrenceKind] = None
            if BLOCK_ENABLE_PATTERN.search(line):
                kind = OccurrenceKind.ENABLED
            elif BLOCK_PACKAGE_PATTERN.search(line):
                kind = OccurrenceKind.PACKAGE_ASSIGNMENT
            if kind is not None:
                occurrences.append(KeyOccurrence(key=key, path=path, line=lineno, kind=kind))

        for block in blocks:
            block[1] += line.count("{") - line.count("}")

        for key, pattern in patterns.items():
            match = pattern.search(line)
            if match is None:
                continue
            rest = line[match.end():]
            occurrences.append(
                KeyOccurrence(key=key, path=path, line=lineno, kind=classify_assignment(rest))
            )
            opener = BLOCK_OPEN_PATTERN.match(rest)
            if opener is not None:
                after = rest[opener.end():]
                depth = 1 + after.count("{") - after.count("}")
                if depth > 0:
                    blocks.append([key, depth])

        blocks = [block for block in blocks if block[1] > 0]

    return occurrences
