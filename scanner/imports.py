"""Import extraction for NixOS configuration files.

The extractor does not parse the Nix language. It runs a small tokenizer
over the text that knows three states: outside any list, inside an
``imports = [ ... ]`` list, and inside a ``modules = [ ... ]`` list (the
module list of a flake's ``nixosConfigurations``). Inside a list, elements
are separated by whitespace or commas, as in Nix itself, and parenthesised
expressions are kept together as a single element.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from graph.model import ImportKind, ImportReference


DEFAULT_EXTENSION = ".nix"

LIST_OPENERS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("imports", re.compile(r"\bimports\s*=\s*\[")),
    ("modules", re.compile(r"\bmodules\s*=\s*\[")),
)

# Local flake inputs: `foo.url = "path:./sub";` or `url = "path:/srv/flake";`
PATH_INPUT_PATTERN = re.compile(r"""["']path:([^"'\s;]+)["']""")

STRUCTURAL_TOKENS = {"[", "]", "];", "=", "imports", "modules", "imports=[", "modules=["}

OPEN_BRACKETS = "([{"
CLOSE_BRACKETS = ")]}"


@dataclass
class ImportScan:
    """Result of scanning one file for imports."""

    references: List[ImportReference] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)  # unparseable line numbers


def extract_imports(text: str, extension: str = DEFAULT_EXTENSION) -> List[ImportReference]:
    """
    Return the import references of a file in source order.

    Args:
        text: File content.
        extension: Configuration file extension used to recognise paths.

    Returns:
        List of ImportReference objects.
    """
    return scan_imports(text, extension).references


def scan_imports(text: str, extension: str = DEFAULT_EXTENSION) -> ImportScan:
    """
    Tokenize a file and classify every element of its import lists.

    Lines with an unterminated string inside a list are skipped and their
    line numbers reported in ``ImportScan.skipped``; extraction carries on
    with the following lines.

    Args:
        text: File content.
        extension: Configuration file extension used to recognise paths.

    Returns:
        ImportScan with references and skipped line numbers.
    """
    tokenizer = _ListTokenizer(extension)
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        tokenizer.feed(lineno, raw_line)
    tokenizer.finish()
    return tokenizer.scan


def classify_import(token: str, extension: str = DEFAULT_EXTENSION) -> ImportKind:
    """
    Classify a cleaned import token.

    Args:
        token: Token with quotes and separators already removed.
        extension: Configuration file extension.

    Returns:
        The ImportKind of the token.
    """
    if token.startswith("<") and token.endswith(">") and len(token) > 2:
        return ImportKind.EXTERNAL
    if " " not in token and token.endswith(extension) and len(token) > len(extension):
        if token.startswith(("./", "../")):
            return ImportKind.RELATIVE
        if token.startswith("/"):
            return ImportKind.ABSOLUTE
    return ImportKind.DYNAMIC


def clean_token(token: str) -> str:
    """Strip whitespace, trailing separators and surrounding quotes."""
    cleaned = token.strip().rstrip(";,").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1].strip()
    return cleaned


def strip_comment(line: str) -> str:
    """Remove a trailing ``#`` comment that is not inside a string."""
    in_string = False
    for index, char in enumerate(line):
        if char == '"':
            in_string = not in_string
        elif char == "#" and not in_string:
            return line[:index]
    return line


def _path_input_target(value: str, extension: str) -> Optional[str]:
    """Map a ``path:`` flake input to the flake file it points at."""
    value = value.rstrip("/")
    if not value:
        return None
    if value.endswith("flake" + extension):
        target = value
    else:
        target = f"{value}/flake{extension}"
    if not target.startswith(("/", "./", "../")):
        target = "./" + target
    return target


class _ListTokenizer:
    """Line-by-line tokenizer with explicit inside/outside-list state."""

    def __init__(self, extension: str):
        self.extension = extension
        self.scan = ImportScan()
        self.section: Optional[str] = None
        self.nesting = 0
        self.buffer = ""
        self.buffer_line = 0

    def feed(self, lineno: int, raw_line: str) -> None:
        line = strip_comment(raw_line)

        for match in PATH_INPUT_PATTERN.finditer(line):
            target = _path_input_target(match.group(1), self.extension)
            if target is not None:
                self._emit(target, lineno, section="inputs")

        if self.section is None and not self._find_opener(line, 0):
            return

        if line.count('"') % 2:
            self.scan.skipped.append(lineno)
            return

        position = 0
        while position < len(line):
            if self.section is None:
                opener = self._find_opener(line, position)
                if opener is None:
                    return
                self.section, position = opener
                self.nesting = 0
                continue
            position = self._consume(line, position, lineno)

        # A newline separates elements unless an expression is still open
        if self.nesting == 0:
            self._flush()
        elif self.buffer:
            self.buffer += "\n"

    def finish(self) -> None:
        self._flush()

    def _find_opener(self, line: str, start: int) -> Optional[Tuple[str, int]]:
        best: Optional[Tuple[str, int, int]] = None
        for name, pattern in LIST_OPENERS:
            match = pattern.search(line, start)
            if match and (best is None or match.start() < best[1]):
                best = (name, match.start(), match.end())
        if best is None:
            return None
        return best[0], best[2]

    def _consume(self, line: str, position: int, lineno: int) -> int:
        """Consume list content from ``position``; return where scanning stopped."""
        in_string = False
        index = position
        while index < len(line):
            char = line[index]
            if not self.buffer and not char.isspace():
                self.buffer_line = lineno

            if in_string:
                self.buffer += char
                if char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
                self.buffer += char
            elif self.nesting == 0 and (char.isspace() or char == ","):
                self._flush()
            elif self.nesting == 0 and char == "]":
                self._flush()
                self.section = None
                return index + 1
            elif char in OPEN_BRACKETS:
                self.nesting += 1
                self.buffer += char
            elif char in CLOSE_BRACKETS and self.nesting > 0:
                self.nesting -= 1
                self.buffer += char
                if self.nesting == 0:
                    self._flush()
            else:
                self.buffer += char
            index += 1
        return index

    def _flush(self) -> None:
        if not self.buffer:
            return
        raw, self.buffer = self.buffer, ""
        section = self.section or "imports"

        # Inline modules (`{ imports = [ ... ]; }` inside a list) contribute
        # their own imports instead of one opaque element.
        if any(pattern.search(raw) for _, pattern in LIST_OPENERS):
            nested = scan_imports(raw, self.extension)
            offset = self.buffer_line - 1
            for reference in nested.references:
                if reference.section == "inputs":
                    continue  # already emitted line by line
                self.scan.references.append(
                    ImportReference(
                        raw=reference.raw,
                        kind=reference.kind,
                        line=reference.line + offset,
                        section=reference.section,
                    )
                )
            self.scan.skipped.extend(line + offset for line in nested.skipped)
            return

        self._emit(" ".join(raw.split()), self.buffer_line, section)

    def _emit(self, token: str, lineno: int, section: str) -> None:
        cleaned = clean_token(token)
        if not cleaned or cleaned in STRUCTURAL_TOKENS:
            return
        self.scan.references.append(
            ImportReference(
                raw=cleaned,
                kind=classify_import(cleaned, self.extension),
                line=lineno,
                section=section,
            )
        )
