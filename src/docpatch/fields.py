"""Heuristic lookup of a named field declaration inside a struct body."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .syntax import leading_whitespace, split_lines

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_FIELD_TEMPLATE = (
    r"^[ \t]*"
    r"(?:#!?\[[^\]]*\]\s*)*"
    r"(?:pub(?:\([^)]*\))?\s+)?"
    r"(?:r#)?{name}"
    r"\s*:(?!:)\s*[^{{}}\s][^{{}}]*?,?\s*$"
)


@dataclass(slots=True, frozen=True)
class FieldLocation:
    """Position of a field declaration relative to the body text it was found in."""

    name: str
    line_index: int
    byte_offset: int
    indentation: str
    line_text: str


def field_pattern(name: str) -> re.Pattern[str] | None:
    """Compile the declaration pattern for ``name``; ``None`` for non-identifiers."""
    bare = name.strip()
    if bare.startswith("r#"):
        bare = bare[2:]
    if not _IDENTIFIER.fullmatch(bare):
        return None
    return re.compile(_FIELD_TEMPLATE.format(name=re.escape(bare)))


def locate_field(body_text: str, name: str) -> FieldLocation | None:
    """Return where ``name`` is declared in ``body_text``, or ``None``.

    Only the first line of a declaration is examined and the identifier must
    match exactly. A miss is not an error: callers drop the field.
    """
    pattern = field_pattern(name)
    if pattern is None or not body_text:
        return None
    offset = 0
    for index, raw in enumerate(split_lines(body_text)):
        line = raw.rstrip("\r\n")
        if pattern.match(line):
            return FieldLocation(
                name=name.strip(),
                line_index=index,
                byte_offset=offset,
                indentation=leading_whitespace(line),
                line_text=line,
            )
        offset += len(raw.encode("utf-8"))
    return None


__all__ = ["FieldLocation", "field_pattern", "locate_field"]
