"""Insertion point resolution for documentation blocks.

Every item kind gets exactly one window in original byte coordinates:

* functions insert at the start of the signature line and consume one blank
  line directly above it;
* structs insert above their first attribute line so attributes stay bound
  to the declaration;
* fields follow the struct rule inside the struct body and copy the field
  line's indentation.

When a comment block already sits above the insertion point the window
covers exactly that block (blank lines inside the run included), so
replacing it never touches attributes or the declaration itself.
"""

from __future__ import annotations

from dataclasses import dataclass

from .schema import ItemKind
from .syntax import DEFAULT_STYLE, CommentStyle, LineTable, leading_whitespace


@dataclass(slots=True, frozen=True)
class InsertionWindow:
    """Byte range to replace (empty for pure insertion) plus rendering hints."""

    start: int
    end: int
    first_line: int
    indentation: str
    existing_block: bool = False
    leading_blank: bool = False

    @property
    def replace_span(self) -> tuple[int, int] | None:
        if self.start == self.end:
            return None
        return (self.start, self.end)


def resolve_insertion(
    table: LineTable,
    declaration_line: int,
    kind: ItemKind,
    *,
    style: CommentStyle = DEFAULT_STYLE,
    floor: int = 0,
    indentation: str | None = None,
    separate: bool = True,
) -> InsertionWindow:
    """Compute the insertion window for the item declared on ``declaration_line``.

    ``floor`` is the lowest line index that may be scanned (the first line
    inside a struct body for fields). ``indentation`` overrides the
    indentation copied from the declaration line.
    """
    declaration_line = max(0, min(declaration_line, len(table)))
    floor = max(0, min(floor, declaration_line))
    indent = indentation if indentation is not None else leading_whitespace(table.text(declaration_line))

    doc_top = _comment_run_start(table, declaration_line, floor, style)
    if doc_top < declaration_line:
        return _window(table, doc_top, declaration_line, indent, existing=True, kind=kind, separate=False)

    anchor = _attribute_run_start(table, declaration_line, floor, style)
    if anchor < declaration_line:
        doc_top = _comment_run_start(table, anchor, floor, style)
        if doc_top < anchor:
            return _window(table, doc_top, anchor, indent, existing=True, kind=kind, separate=False)
        return _window(table, anchor, anchor, indent, existing=False, kind=kind, separate=separate)

    if kind is ItemKind.FUNCTION and declaration_line > floor and not table.text(declaration_line - 1).strip():
        return _window(
            table,
            declaration_line - 1,
            declaration_line,
            indent,
            existing=False,
            kind=kind,
            separate=separate,
        )
    return _window(table, declaration_line, declaration_line, indent, existing=False, kind=kind, separate=separate)


def _window(
    table: LineTable,
    first_line: int,
    end_line: int,
    indentation: str,
    *,
    existing: bool,
    kind: ItemKind,
    separate: bool,
) -> InsertionWindow:
    leading_blank = separate and kind is not ItemKind.FIELD and _needs_separator(table, first_line)
    return InsertionWindow(
        start=table.start(first_line),
        end=table.start(end_line),
        first_line=first_line,
        indentation=indentation,
        existing_block=existing,
        leading_blank=leading_blank,
    )


def _comment_run_start(table: LineTable, index: int, floor: int, style: CommentStyle) -> int:
    top = index
    cursor = index - 1
    while cursor >= floor:
        text = table.text(cursor)
        if style.is_comment(text):
            top = cursor
        elif text.strip():
            break
        cursor -= 1
    return top


def _attribute_run_start(table: LineTable, index: int, floor: int, style: CommentStyle) -> int:
    # Blank lines are only stepped over once the run has an attribute.
    anchor = index
    cursor = index - 1
    while cursor >= floor:
        text = table.text(cursor)
        if style.is_attribute(text):
            anchor = cursor
        elif text.strip() or anchor == index:
            break
        cursor -= 1
    return anchor


def _needs_separator(table: LineTable, first_line: int) -> bool:
    if first_line == 0:
        return False
    previous = table.text(first_line - 1).strip()
    return bool(previous) and not previous.endswith("{")


__all__ = ["InsertionWindow", "resolve_insertion"]
