from __future__ import annotations

from docpatch.resolver import resolve_insertion
from docpatch.schema import ItemKind
from docpatch.syntax import LineTable


def test_function_consumes_blank_line_above_signature() -> None:
    table = LineTable("use a;\n\nfn f() {}\n")

    window = resolve_insertion(table, 2, ItemKind.FUNCTION)

    assert (window.start, window.end) == (table.start(1), table.start(2))
    assert window.leading_blank
    assert not window.existing_block


def test_function_at_start_of_file_inserts_at_zero() -> None:
    table = LineTable("fn f() {}\n")

    window = resolve_insertion(table, 0, ItemKind.FUNCTION)

    assert (window.start, window.end) == (0, 0)
    assert window.replace_span is None
    assert not window.leading_blank


def test_existing_comment_block_is_the_replace_window() -> None:
    table = LineTable("/// Old.\n/// More.\nfn f() {}\n")

    window = resolve_insertion(table, 2, ItemKind.FUNCTION)

    assert window.existing_block
    assert window.replace_span == (0, table.start(2))
    assert not window.leading_blank


def test_struct_inserts_above_all_attributes() -> None:
    table = LineTable("use a;\n#[derive(Debug)]\n\n#[repr(C)]\npub struct S;\n")

    window = resolve_insertion(table, 4, ItemKind.STRUCT)

    assert (window.start, window.end) == (table.start(1), table.start(1))
    assert window.first_line == 1
    assert window.leading_blank


def test_comment_above_attributes_is_replaced_without_touching_them() -> None:
    table = LineTable("/// Doc.\n#[derive(Debug)]\nstruct S {}\n")

    window = resolve_insertion(table, 2, ItemKind.STRUCT)

    assert window.existing_block
    assert window.replace_span == (0, table.start(1))


def test_function_with_attribute_is_anchored_above_attribute() -> None:
    table = LineTable("\n#[inline]\nfn f() {}\n")

    window = resolve_insertion(table, 2, ItemKind.FUNCTION)

    assert (window.start, window.end) == (table.start(1), table.start(1))


def test_field_respects_floor_and_indentation() -> None:
    table = LineTable("pub struct S {\n    a: u8,\n    b: u8,\n}\n")

    window = resolve_insertion(table, 2, ItemKind.FIELD, floor=1, indentation="    ")

    assert (window.start, window.end) == (table.start(2), table.start(2))
    assert window.indentation == "    "
    assert not window.leading_blank


def test_no_separator_after_opening_brace() -> None:
    table = LineTable("impl S {\n    fn f() {}\n}\n")

    window = resolve_insertion(table, 1, ItemKind.FUNCTION)

    assert window.start == table.start(1)
    assert window.indentation == "    "
    assert not window.leading_blank


def test_separator_can_be_disabled() -> None:
    table = LineTable("}\nfn f() {}\n")

    assert resolve_insertion(table, 1, ItemKind.FUNCTION).leading_blank
    assert not resolve_insertion(table, 1, ItemKind.FUNCTION, separate=False).leading_blank


def test_blank_lines_inside_comment_run_belong_to_the_block() -> None:
    table = LineTable("/// Doc.\n\nfn f() {}\n")

    window = resolve_insertion(table, 2, ItemKind.FUNCTION)

    assert window.existing_block
    assert window.replace_span == (0, table.start(2))


def test_inner_attribute_is_not_part_of_the_item_attribute_run() -> None:
    table = LineTable("#![allow(dead_code)]\n\nfn main() {}\n")

    window = resolve_insertion(table, 2, ItemKind.FUNCTION)

    assert (window.start, window.end) == (table.start(1), table.start(2))
    assert window.first_line == 1
    assert window.leading_blank
    assert not window.existing_block


def test_struct_directly_below_inner_attribute_inserts_at_declaration() -> None:
    table = LineTable("#![no_std]\nstruct S;\n")

    window = resolve_insertion(table, 1, ItemKind.STRUCT)

    assert (window.start, window.end) == (table.start(1), table.start(1))
    assert window.leading_blank


def test_blank_line_above_declaration_ends_the_attribute_scan() -> None:
    table = LineTable("#[derive(Debug)]\n\nstruct S;\n")

    window = resolve_insertion(table, 2, ItemKind.STRUCT)

    assert (window.start, window.end) == (table.start(2), table.start(2))
    assert not window.leading_blank
