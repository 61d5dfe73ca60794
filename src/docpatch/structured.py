"""Typed payloads describing planned byte-level edits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(slots=True)
class Edit:
    """One planned mutation of a file, in original byte coordinates.

    ``start == end`` is a pure insertion; otherwise ``[start, end)`` is
    replaced. ``text`` is a canonical comment block without indentation.
    """

    path: str
    start: int
    end: int
    text: str
    indentation: str = ""
    leading_blank: bool = False
    newline: str = "\n"
    item: str = ""
    action: Literal["insert", "replace"] = "insert"

    @property
    def replace_span(self) -> tuple[int, int] | None:
        if self.start == self.end:
            return None
        return (self.start, self.end)

    def render(self) -> str:
        """Return the text spliced into the file for this edit."""
        lines = [line.rstrip("\r") for line in self.text.split("\n")] if self.text else []
        rendered = "".join(f"{self.indentation}{line}{self.newline}" for line in lines)
        if self.leading_blank and rendered:
            rendered = self.newline + rendered
        return rendered
