from __future__ import annotations

import pytest

from docpatch.sanitize import (
    decode_common_escapes,
    is_canonical_block,
    sanitize_doc,
    strip_wrapper_markers,
    unwrap_fenced_reply,
)
from docpatch.syntax import CommentStyle


def test_prose_becomes_comment_block_with_collapsed_blank_runs() -> None:
    raw = "Returns the port.\n\n\nMore detail."

    assert sanitize_doc(raw) == "/// Returns the port.\n///\n/// More detail."


def test_sanitize_is_idempotent() -> None:
    once = sanitize_doc("Returns the port.\n\n\nMore detail.\nExample:\n```\nlet x = 1;")

    assert sanitize_doc(once) == once


def test_reasoning_tags_and_wrapper_marker_are_removed() -> None:
    raw = "<think>\nfigure out the wording\n</think>\nANSWER: Opens the socket."

    assert sanitize_doc(raw) == "/// Opens the socket."


def test_unclosed_fence_is_tagged_and_closed() -> None:
    raw = "Example:\n```\nlet x = 1;"

    assert sanitize_doc(raw) == "/// Example:\n/// ```rust\n/// let x = 1;\n/// ```"


def test_canonical_block_keeps_untagged_fence_but_balances_it() -> None:
    raw = "/// ```\n/// code"

    assert sanitize_doc(raw) == "/// ```\n/// code\n/// ```"


def test_reply_wrapped_in_single_fence_is_unwrapped() -> None:
    raw = "```text\nLine one.\nLine two.\n```"

    assert sanitize_doc(raw) == "/// Line one.\n/// Line two."


def test_literal_escapes_are_decoded_for_single_line_replies() -> None:
    raw = "First line.\\nSecond line."

    assert sanitize_doc(raw) == "/// First line.\n/// Second line."


def test_section_labels_become_headings() -> None:
    raw = "Adds numbers.\nReturns:\nThe sum."

    assert sanitize_doc(raw) == "/// Adds numbers.\n/// ## Returns\n/// The sum."


def test_json_noise_and_outer_quotes_are_dropped() -> None:
    raw = '{\n"Summary text."\n}'

    assert sanitize_doc(raw) == "/// Summary text."


def test_leading_bare_comment_lines_are_dropped() -> None:
    assert sanitize_doc("///\n///\n/// Doc.") == "/// Doc."


@pytest.mark.parametrize("raw", [None, "", "   \n\n", "<think>only reasoning</think>"])
def test_nothing_documentable_yields_empty_block(raw: str | None) -> None:
    assert sanitize_doc(raw) == ""


def test_custom_comment_prefix() -> None:
    style = CommentStyle(comment_prefix="//!")

    assert sanitize_doc("Crate docs.", style=style) == "//! Crate docs."


def test_crlf_input_is_normalised() -> None:
    assert sanitize_doc("One.\r\nTwo.") == "/// One.\n/// Two."


def test_is_canonical_block() -> None:
    assert is_canonical_block("/// a\n\n/// b", "///")
    assert not is_canonical_block("/// a\nb", "///")
    assert not is_canonical_block("\n", "///")


def test_last_wrapper_marker_outside_fences_wins() -> None:
    text = "QUESTION: what?\nANSWER: first\n```\nOUTPUT: inside fence\n```\nRESPONSE: final"

    assert strip_wrapper_markers(text, ("ANSWER:", "RESPONSE:", "OUTPUT:", "QUESTION:")) == "final"


def test_unwrap_leaves_partial_fences_alone() -> None:
    text = "Intro\n```\ncode\n```"

    assert unwrap_fenced_reply(text) == text


def test_escapes_kept_in_multiline_text() -> None:
    text = "Line with \\n literal\nsecond"

    assert decode_common_escapes(text) == text


@pytest.mark.parametrize(
    "raw",
    [
        "/// Half commented.\nplain line\n```\nlet x = 1;",
        "ANSWER: Opens.\n```rust\nlet a = 1;\n```\n```\nunterminated",
        "  indented prose\n\t/// stray marker\n",
    ],
)
def test_mixed_input_always_yields_canonical_balanced_block(raw: str) -> None:
    block = sanitize_doc(raw)

    assert is_canonical_block(block, "///")
    fences = [line for line in block.split("\n") if line.removeprefix("///").strip().startswith("```")]
    assert len(fences) % 2 == 0
