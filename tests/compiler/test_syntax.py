"""Tests for the document parser."""

from __future__ import annotations

import pytest

from pagemill.compiler.syntax import (
    ATTR_BOOLEAN,
    ATTR_EXPRESSION,
    ATTR_SPREAD,
    ATTR_STRING,
    MATH_CLASS,
    MATH_DISPLAY_CLASS,
    MATH_INLINE_CLASS,
    DocumentParser,
    Node,
    ParseOptions,
    text_of,
    walk,
)
from pagemill.errors import CompileError


def _parse(text: str, **options: bool) -> Node:
    return DocumentParser(ParseOptions(**options)).parse(text)


def _types(nodes: list[Node]) -> list[str]:
    return [node.type for node in nodes]


def test_block_structure_of_plain_markdown() -> None:
    tree = _parse(
        "# Title\n\nSome *emphasis* and **strong** text.\n\n- one\n- two\n\n> quoted\n\n---\n",
        rich=False,
    )

    assert _types(tree.children) == ["heading", "paragraph", "list", "blockquote", "thematicBreak"]
    heading = tree.children[0]
    assert heading.depth == 1
    assert text_of(heading) == "Title"
    assert _types(tree.children[1].children) == ["text", "emphasis", "text", "strong", "text"]
    assert [text_of(item) for item in tree.children[2].children] == ["one", "two"]


def test_commonmark_reference_links_setext_headings_and_nested_lists() -> None:
    tree = _parse(
        "Guide\n=====\n\nRead [the docs][ref].\n\n- outer\n  - inner\n\n[ref]: /docs \"Docs\"\n",
        rich=False,
    )

    assert _types(tree.children) == ["heading", "paragraph", "list"]
    assert (tree.children[0].depth, text_of(tree.children[0])) == (1, "Guide")
    link = tree.children[1].children[1]
    assert (link.type, link.url, link.title) == ("link", "/docs", "Docs")
    outer_item = tree.children[2].children[0]
    assert _types(outer_item.children) == ["paragraph", "list"]
    assert text_of(outer_item.children[1]) == "inner"


def test_fenced_code_keeps_language_and_meta() -> None:
    tree = _parse('```py filename="app.py" {1}\nprint("hi")\n```\n')

    code = tree.children[0]
    assert code.type == "code"
    assert code.lang == "py"
    assert code.meta == 'filename="app.py" {1}'
    assert code.value == 'print("hi")'
    assert code.classes == ["language-py"]


def test_custom_heading_id_is_recorded() -> None:
    heading = _parse("## Install [#setup]\n").children[0]

    assert heading.data["id"] == "setup"
    assert text_of(heading) == "Install"


def test_links_images_and_inline_code() -> None:
    paragraph = _parse('See [docs](/docs "Docs") and ![logo](/logo.png) with `code`.\n').children[0]

    link, image, code = (node for node in paragraph.children if node.type != "text")
    assert (link.type, link.url, link.title, text_of(link)) == ("link", "/docs", "Docs", "docs")
    assert (image.type, image.url, image.value) == ("image", "/logo.png", "logo")
    assert (code.type, code.value) == ("inlineCode", "code")


def test_table_rows_and_alignment() -> None:
    tree = _parse("| a | b |\n| :- | -: |\n| 1 | 2 |\n")

    table = tree.children[0]
    assert table.type == "table"
    assert table.data["align"] == ["left", "right"]
    header, row = table.children
    assert header.data["header"] is True
    assert [text_of(cell) for cell in row.children] == ["1", "2"]


def test_math_annotations_are_tagged() -> None:
    tree = _parse("Inline $a^2$ here.\n\n$$\nb^2\n$$\n")

    inline = next(node for node, _ in walk(tree) if node.type == "inlineCode")
    display = tree.children[1]
    assert inline.classes == [MATH_CLASS, MATH_INLINE_CLASS]
    assert inline.value == "a^2"
    assert display.type == "code"
    assert display.classes == [MATH_CLASS, MATH_DISPLAY_CLASS]
    assert display.value == "b^2"


def test_math_is_plain_text_when_disabled() -> None:
    tree = _parse("Costs $5 and $6.\n", math=False)

    assert _types(tree.children[0].children) == ["text"]


def test_rich_dialect_module_scope_and_components() -> None:
    tree = _parse(
        'from my_components import Callout\n'
        'export const answer = 42\n'
        '\n'
        '<Callout kind="info" open count={1 + 1} {...extra}>\n'
        '  Inside **bold**\n'
        '</Callout>\n'
        '\n'
        '{answer}\n'
    )

    esm, element, expression = tree.children
    assert esm.type == "esm"
    assert esm.data["imports"] == ["from my_components import Callout"]
    assert esm.data["exports"] == {"answer": "42"}
    assert element.type == "element"
    assert element.name == "Callout"
    assert [(a.name, a.value, a.kind) for a in element.attributes] == [
        ("kind", "info", ATTR_STRING),
        ("open", True, ATTR_BOOLEAN),
        ("count", "1 + 1", ATTR_EXPRESSION),
        ("...", "extra", ATTR_SPREAD),
    ]
    assert _types(element.children) == ["paragraph"]
    assert (expression.type, expression.value) == ("expression", "answer")


def test_plain_markdown_treats_components_as_text() -> None:
    tree = _parse("<Callout>hi</Callout>\n", rich=False)

    assert _types(tree.children) == ["paragraph"]
    assert text_of(tree.children[0]) == "<Callout>hi</Callout>"


@pytest.mark.parametrize(
    ("source", "line"),
    [
        ("# Title\n\n<Callout>\n  never closed\n", 3),
        ("para\n\n```js\nunclosed fence\n", 3),
        ("one\n\ntwo {1 +}\n", 3),
        ("export function nope() {}\n", 1),
    ],
)
def test_syntax_errors_carry_line_numbers(source: str, line: int) -> None:
    with pytest.raises(CompileError) as excinfo:
        _parse(source)

    assert excinfo.value.line == line


def test_line_offset_shifts_reported_lines() -> None:
    with pytest.raises(CompileError) as excinfo:
        DocumentParser().parse("text {(}\n", line_offset=4)

    assert excinfo.value.line == 5
