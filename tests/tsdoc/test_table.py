"""Tests for type table row models."""

from __future__ import annotations

from typing import Optional

from pagemill.runtime import Element, text_content
from pagemill.tsdoc import build_table, generate_definition, linkify
from pagemill.tsdoc.table import ReturnRow, TypeChunk, render_markdown_default


def _plain(description: Optional[str]) -> Optional[str]:
    return description


def test_linkify_links_known_identifiers_only() -> None:
    chunks = linkify("Array<User> | null", {"User": "/types#user"})

    assert chunks == [
        TypeChunk("Array<"),
        TypeChunk("User", "/types#user"),
        TypeChunk("> | null"),
    ]


def test_field_rows_carry_ids_defaults_and_deprecation() -> None:
    code = """
export interface Options {
  /** Timeout.
   * @default 10 */
  timeout?: number
  /** @deprecated gone soon */
  legacy: Legacy
  timeout2: number
}
"""
    definition = generate_definition(code, export_name="Options")

    table = build_table(definition, render_markdown=_plain, type_link_map={"Legacy": "/legacy"})

    assert table.is_function is False
    rows = table.fields or []
    assert [row.id for row in rows] == ["timeout", "legacy", "timeout2"]
    assert rows[0].optional is True
    assert rows[0].default == [TypeChunk("10")]
    assert rows[0].description == "Timeout."
    assert rows[1].description == "**Deprecated**: gone soon"
    assert rows[1].type == [TypeChunk("Legacy", "/legacy")]


def test_single_signature_table_uses_unsuffixed_ids() -> None:
    code = """
/** @returns The sum */
export function add(a: number, b: number): number { return a + b }
"""
    table = build_table(generate_definition(code, export_name="add"), render_markdown=_plain)

    assert table.is_function is True
    assert table.tab_labels == []
    (signature,) = table.signatures
    assert signature.index == ""
    assert [row.name for row in signature.params] == ["a", "b"]
    assert isinstance(signature.returns, ReturnRow)
    assert signature.returns.id == "returns"
    assert signature.returns.description == "The sum"


def test_overloads_are_labelled_and_numbered() -> None:
    code = """
export function pick(): string;
export function pick(key: string): { value: string };
export function pick(key?: string): any { return key }
"""
    table = build_table(generate_definition(code, export_name="pick"), render_markdown=_plain)

    assert table.tab_labels == ["Function Signature 1", "Function Signature 2"]
    first, second = table.signatures
    assert first.no_parameters is True
    assert isinstance(first.returns, ReturnRow) and first.returns.id == "returns1"
    assert isinstance(second.returns, list)
    assert [row.name for row in second.returns] == ["value"]


def test_default_markdown_renderer_produces_elements() -> None:
    rendered = render_markdown_default("Uses **bold** and $x$.")

    assert isinstance(rendered, Element)
    assert "bold" in text_content(rendered)
    assert "\\(x\\)" in text_content(rendered)
    assert render_markdown_default(None) is None
