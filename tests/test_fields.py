from __future__ import annotations

import pytest

from docpatch.fields import field_pattern, locate_field

BODY = "{\n    #[serde(default)]\n    pub port: u16,\n    pub(crate) r#type: String,\n    portal: Vec<u8>,\n}"


def test_locates_field_below_attribute() -> None:
    location = locate_field(BODY, "port")

    assert location is not None
    assert location.line_index == 2
    assert location.byte_offset == BODY.index("    pub port")
    assert location.indentation == "    "
    assert location.line_text == "    pub port: u16,"


def test_raw_identifier_matches_with_or_without_prefix() -> None:
    assert locate_field(BODY, "type").line_index == 3
    assert locate_field(BODY, "r#type").line_index == 3


def test_prefix_of_another_field_does_not_match() -> None:
    assert locate_field(BODY, "portal").line_index == 4
    assert locate_field(BODY, "por") is None


@pytest.mark.parametrize("name", ["portt", "host", "", "po rt", "1port"])
def test_unknown_or_invalid_names_are_missed(name: str) -> None:
    assert locate_field(BODY, name) is None


def test_byte_offset_counts_utf8_bytes() -> None:
    body = "{\n    /// héllo\n    pub x: u8,\n}"

    location = locate_field(body, "x")

    assert location is not None
    assert location.byte_offset == len("{\n    /// héllo\n".encode("utf-8"))


def test_path_separator_is_not_a_field() -> None:
    body = "{\n    port::Thing,\n}"

    assert locate_field(body, "port") is None


def test_field_pattern_rejects_non_identifiers() -> None:
    assert field_pattern("a-b") is None
    assert field_pattern("ok_name") is not None
