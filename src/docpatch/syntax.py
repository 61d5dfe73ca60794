"""Shallow source scanning helpers shared by the resolver and field locator."""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Pattern, Sequence

from .schema import ItemKind

DEFAULT_WRAPPER_MARKERS: tuple[str, ...] = ("ANSWER:", "RESPONSE:", "OUTPUT:", "QUESTION:")

_VISIBILITY = r"(?:pub(?:\([^)]*\))?\s+)?"

DECLARATION_PATTERNS: dict[ItemKind, Pattern[str]] = {
    ItemKind.FUNCTION: re.compile(
        rf'^\s*{_VISIBILITY}(?:default\s+)?(?:async\s+)?(?:const\s+)?(?:unsafe\s+)?(?:extern\s+"[^"]*"\s+)?fn\b'
    ),
    ItemKind.STRUCT: re.compile(rf"^\s*{_VISIBILITY}struct\b"),
}

_FORWARD_WINDOW = 20
_BACKWARD_WINDOW = 5


@dataclass(slots=True, frozen=True)
class CommentStyle:
    """Comment and attribute markers of the source language being patched."""

    comment_prefix: str = "///"
    attribute_prefixes: tuple[str, ...] = ("#[",)
    inner_attribute_prefixes: tuple[str, ...] = ("#![",)
    fence_language: str = "rust"
    wrapper_markers: tuple[str, ...] = DEFAULT_WRAPPER_MARKERS
    strip_tags: tuple[str, ...] = ("think",)

    def is_comment(self, line: str) -> bool:
        return line.lstrip().startswith(self.comment_prefix)

    def is_attribute(self, line: str) -> bool:
        """True for an outer attribute line; inner attributes belong to the enclosing scope."""
        stripped = line.lstrip()
        if stripped.startswith(self.inner_attribute_prefixes):
            return False
        return stripped.startswith(self.attribute_prefixes)


DEFAULT_STYLE = CommentStyle()


def leading_whitespace(line: str) -> str:
    """Return the literal whitespace prefix of ``line``."""
    return line[: len(line) - len(line.lstrip(" \t"))]


class LineTable:
    """Line, character and byte offsets for one immutable source snapshot.

    Lines are split on ``\\n`` only; a trailing ``\\r`` stays attached to the
    raw line and is dropped by :meth:`text`.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self._raw: list[str] = list(split_lines(source))
        self._char_starts: list[int] = [0]
        self._byte_starts: list[int] = [0]
        for raw in self._raw:
            self._char_starts.append(self._char_starts[-1] + len(raw))
            self._byte_starts.append(self._byte_starts[-1] + len(raw.encode("utf-8")))
        self.newline = "\r\n" if "\r\n" in source else "\n"

    def __len__(self) -> int:
        return len(self._raw)

    @property
    def byte_length(self) -> int:
        return self._byte_starts[-1]

    def text(self, index: int) -> str:
        """Return line ``index`` without its line terminator."""
        if index < 0 or index >= len(self._raw):
            return ""
        return self._raw[index].rstrip("\r\n")

    def start(self, index: int) -> int:
        """Byte offset at which line ``index`` begins (clamped to the end)."""
        index = max(0, min(index, len(self._raw)))
        return self._byte_starts[index]

    def char_start(self, index: int) -> int:
        index = max(0, min(index, len(self._raw)))
        return self._char_starts[index]

    def line_of(self, byte_offset: int) -> int:
        """Return the index of the line containing ``byte_offset``."""
        if not self._raw:
            return 0
        index = bisect_right(self._byte_starts, byte_offset) - 1
        return max(0, min(index, len(self._raw) - 1))

    def line_of_char(self, char_index: int) -> int:
        if not self._raw:
            return 0
        index = bisect_right(self._char_starts, char_index) - 1
        return max(0, min(index, len(self._raw) - 1))

    def char_to_byte(self, char_index: int) -> int:
        line = self.line_of_char(char_index)
        prefix = self.source[self._char_starts[line] : char_index]
        return self._byte_starts[line] + len(prefix.encode("utf-8"))


@dataclass(slots=True, frozen=True)
class StructBody:
    """Located struct body: the text from ``{`` to the matching ``}``."""

    text: str
    start_char: int
    start_byte: int
    first_line: int
    last_line: int
    starts_at_line_start: bool

    @property
    def floor(self) -> int:
        """Lowest file line that may belong to a field's prefix."""
        return self.first_line if self.starts_at_line_start else self.first_line + 1


def approximate_line(table: LineTable, *, start_line: int | None, start_byte: int | None) -> int:
    """Translate a harvested span start into a 0-based line index."""
    if start_line is not None and start_line > 0:
        return min(start_line - 1, max(len(table) - 1, 0))
    if start_byte is not None and start_byte >= 0:
        return table.line_of(start_byte)
    return 0


def find_declaration_line(
    table: LineTable,
    approx_index: int,
    kind: ItemKind,
    *,
    signature: str | None = None,
) -> int | None:
    """Locate the declaration line of an item near ``approx_index``.

    The literal signature is preferred; otherwise the kind's declaration
    pattern is searched forward first and then a few lines backward.
    """
    total = len(table)
    if total == 0:
        return None
    start = max(0, min(approx_index, total))
    forward = range(start, min(start + _FORWARD_WINDOW, total))
    backward = range(min(start, total) - 1, max(start - _BACKWARD_WINDOW, 0) - 1, -1)

    wanted = _first_signature_line(signature)
    if wanted:
        for index in (*forward, *backward):
            if table.text(index).strip().startswith(wanted):
                return index

    pattern = DECLARATION_PATTERNS.get(kind)
    if pattern is None:
        return None
    for index in (*forward, *backward):
        if pattern.match(table.text(index)):
            return index
    return None


def _first_signature_line(signature: str | None) -> str:
    if not signature:
        return ""
    for line in signature.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


def locate_struct_body(
    table: LineTable,
    declaration_index: int,
    body_text: str | None = None,
) -> StructBody | None:
    """Find the struct body that follows ``declaration_index``.

    Caller supplied ``body_text`` is searched for first; when it is absent or
    cannot be found the body is recovered by brace matching.
    """
    search_from = table.char_start(declaration_index)
    if body_text and body_text.strip():
        found = table.source.find(body_text, search_from)
        if found >= 0:
            return _make_body(table, found, found + len(body_text))
    return _match_braces(table, search_from)


def _match_braces(table: LineTable, search_from: int) -> StructBody | None:
    source = table.source
    opened_at: int | None = None
    depth = 0
    for position in range(search_from, len(source)):
        char = source[position]
        if opened_at is None:
            if char == ";":
                return None
            if char == "{":
                opened_at = position
                depth = 1
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return _make_body(table, opened_at, position + 1)
    return None


def _make_body(table: LineTable, start_char: int, end_char: int) -> StructBody:
    first_line = table.line_of_char(start_char)
    last_line = table.line_of_char(max(end_char - 1, start_char))
    return StructBody(
        text=table.source[start_char:end_char],
        start_char=start_char,
        start_byte=table.char_to_byte(start_char),
        first_line=first_line,
        last_line=last_line,
        starts_at_line_start=table.char_start(first_line) == start_char,
    )


def split_lines(text: str) -> Sequence[str]:
    """Split ``text`` on ``\\n`` into lines that keep their terminators."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


__all__ = [
    "CommentStyle",
    "DECLARATION_PATTERNS",
    "DEFAULT_STYLE",
    "DEFAULT_WRAPPER_MARKERS",
    "LineTable",
    "StructBody",
    "approximate_line",
    "find_declaration_line",
    "leading_whitespace",
    "locate_struct_body",
    "split_lines",
]
