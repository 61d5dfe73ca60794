"""Normalise generator output into a canonical line-comment block."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from .syntax import DEFAULT_STYLE, CommentStyle, split_lines

_FENCE = "```"
_SECTION_HEADINGS = {
    "Parameters:": "## Parameters",
    "Arguments:": "## Arguments",
    "Returns:": "## Returns",
    "Errors:": "## Errors",
    "Panics:": "## Panics",
    "Safety:": "## Safety",
    "Notes:": "## Notes",
    "Examples:": "## Examples",
}
_NOISE_LINES = {"{", "}", "},"}


def sanitize_doc(raw: str | None, *, style: CommentStyle = DEFAULT_STYLE) -> str:
    """Return ``raw`` as a canonical comment block for ``style``.

    Input that already reads as a comment block only has its blank runs,
    leading blank lines and fences normalised. Anything else is first cleaned
    of reasoning tags, wrapper markers, a wrapping code fence and literal
    escapes. The result is ``""`` when nothing documentable remains.
    """
    text = _normalise_newlines(raw or "")
    if is_canonical_block(text, style.comment_prefix):
        return _to_comment_lines(split_lines(text), style, tag_fences=False)
    cleaned = strip_tagged_blocks(text, style.strip_tags)
    cleaned = strip_wrapper_markers(cleaned, style.wrapper_markers)
    cleaned = unwrap_fenced_reply(cleaned)
    cleaned = decode_common_escapes(cleaned)
    return _to_comment_lines(_prose_lines(cleaned), style, tag_fences=True)


def is_canonical_block(text: str, prefix: str) -> bool:
    """True when every non-blank line of ``text`` starts with ``prefix``."""
    saw_content = False
    for line in split_lines(text):
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith(prefix):
            return False
        saw_content = True
    return saw_content


def strip_tagged_blocks(text: str, tags: Iterable[str]) -> str:
    """Remove ``<tag>...</tag>`` blocks (case-insensitive, across lines)."""
    for tag in tags:
        pattern = re.compile(rf"<\s*{re.escape(tag)}\b[^>]*>.*?</\s*{re.escape(tag)}\s*>", re.IGNORECASE | re.DOTALL)
        text = pattern.sub("", text)
    return text.strip()


def strip_wrapper_markers(text: str, markers: Sequence[str]) -> str:
    """Keep only the text following the last line-leading wrapper marker.

    Markers inside fenced regions are ignored.
    """
    in_fence = False
    position = 0
    split_at: int | None = None
    for line in split_lines(text):
        trimmed = line.lstrip()
        if trimmed.startswith(_FENCE):
            in_fence = not in_fence
        elif not in_fence:
            for marker in markers:
                if trimmed.startswith(marker):
                    split_at = position + (len(line) - len(trimmed)) + len(marker)
                    break
        position += len(line)
    if split_at is None:
        return text.strip()
    return text[split_at:].strip()


def unwrap_fenced_reply(text: str) -> str:
    """Return the inside of a reply that is wrapped whole in one code fence."""
    lines = [line.rstrip() for line in text.strip().split("\n")]
    fences = [index for index, line in enumerate(lines) if line.lstrip().startswith(_FENCE)]
    if len(lines) >= 2 and fences == [0, len(lines) - 1]:
        return "\n".join(lines[1:-1]).strip()
    return text.strip()


def decode_common_escapes(text: str) -> str:
    """Decode literal ``\\n``/``\\t``/``\\"`` escapes in single-line replies."""
    if "\n" in text or "\\" not in text:
        return text
    return text.replace("\\r\\n", "\n").replace("\\n", "\n").replace("\\t", "\t").replace('\\"', '"')


def _prose_lines(text: str) -> list[str]:
    lines: list[str] = []
    in_fence = False
    for line in split_lines(text):
        stripped = line.strip()
        if stripped.startswith(_FENCE):
            in_fence = not in_fence
            lines.append(stripped)
            continue
        if in_fence:
            lines.append(line.rstrip())
            continue
        if stripped in _NOISE_LINES:
            continue
        heading = _SECTION_HEADINGS.get(stripped)
        if heading is not None:
            lines.append(heading)
            continue
        if len(stripped) >= 2 and stripped[0] == '"' and stripped[-1] == '"':
            stripped = stripped[1:-1].strip()
        lines.append(stripped)
    return lines


def _to_comment_lines(lines: Iterable[str], style: CommentStyle, *, tag_fences: bool) -> str:
    prefix = style.comment_prefix
    out: list[str] = []
    in_fence = False
    pending_blank = False
    for line in lines:
        content = line.rstrip()
        stripped = content.strip()
        if stripped.startswith(prefix):
            body = stripped[len(prefix):]
            entry = stripped
        else:
            body = content if in_fence else stripped
            entry = f"{prefix} {body}" if body.strip() else prefix

        if not body.strip() and not in_fence:
            # Blank line: runs collapse into one blank marker; leading blanks drop.
            if not stripped.startswith(prefix):
                pending_blank = bool(out)
                continue
            if not out:
                continue

        if pending_blank:
            if out and out[-1] != prefix:
                out.append(prefix)
            pending_blank = False

        if body.strip().startswith(_FENCE):
            if not in_fence and tag_fences and body.strip() == _FENCE and style.fence_language:
                entry = f"{prefix} {_FENCE}{style.fence_language}"
            in_fence = not in_fence
        out.append(entry)

    while out and out[-1] == prefix:
        out.pop()
    if in_fence:
        out.append(f"{prefix} {_FENCE}")
    return "\n".join(out)


def _normalise_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


__all__ = [
    "decode_common_escapes",
    "is_canonical_block",
    "sanitize_doc",
    "strip_tagged_blocks",
    "strip_wrapper_markers",
    "unwrap_fenced_reply",
]
