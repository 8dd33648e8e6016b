"""Tests for code block annotations."""

from __future__ import annotations

import pytest

from pagemill.compiler.pipeline import CompilerOptions, DocumentCompiler
from pagemill.compiler.syntax import DocumentParser
from pagemill.models import SourceFile
from pagemill.stages import HighlightStage, StageContext
from pagemill.stages.highlight import canonical_language, parse_meta


def _fake_highlighter(code: str, language: str) -> str:
    return f"<{language}>{code}</{language}>"


def test_code_blocks_receive_annotations() -> None:
    tree = DocumentParser().parse('```py filename="app.py" showLineNumbers {1,3-4}\nx = 1\n```\n')
    context = StageContext(options={"enabled": True})

    HighlightStage(_fake_highlighter).run(tree, context)

    code = tree.children[0]
    assert context.participated is True
    assert code.data == {
        "language": "python",
        "filename": "app.py",
        "copy": False,
        "showLineNumbers": True,
        "highlightLines": "1,3-4",
        "html": "<python>x = 1</python>",
    }


def test_copy_flag_defaults_from_options() -> None:
    tree = DocumentParser().parse("```js\na\n```\n\n```js copy=false\nb\n```\n")
    context = StageContext(options={"enabled": True, "default_show_copy_code": True})

    HighlightStage(_fake_highlighter).run(tree, context)

    assert [node.data["copy"] for node in tree.children] == [True, False]


def test_math_blocks_are_left_alone() -> None:
    tree = DocumentParser().parse("```math\nx\n```\n")
    context = StageContext(options={"enabled": True})

    HighlightStage(_fake_highlighter).run(tree, context)

    assert tree.children[0].data == {}
    assert context.participated is False


def test_disabled_highlighting_is_a_no_op() -> None:
    tree = DocumentParser().parse("```py\nx\n```\n")

    HighlightStage(_fake_highlighter).run(tree, StageContext(options={"enabled": False}))

    assert tree.children[0].data == {}


def test_compiled_page_carries_highlight_props() -> None:
    compiler = DocumentCompiler(CompilerOptions(default_show_copy_code=True))
    source = SourceFile.from_text("```python\nprint(1)\n```\n", path="c.md")

    pre = compiler.compile(source, file_path="c.md").render().children[0]

    assert pre.type == "pre"
    assert pre.props["data-language"] == "python"
    assert pre.props["data-copy"] is True
    code = pre.children[0]
    assert code.props["className"] == "language-python"
    assert "print" in code.props["html"]
    assert code.children == ("print(1)",)


@pytest.mark.parametrize(
    ("lang", "expected"),
    [("py", "python"), ("JS", "javascript"), (None, "text"), ("not-a-language", "not-a-language")],
)
def test_canonical_language(lang: str | None, expected: str) -> None:
    assert canonical_language(lang) == expected


def test_parse_meta_reads_quoted_and_bare_values() -> None:
    assert parse_meta("filename='a b.ts' copy {2}") == {
        "filename": "a b.ts",
        "copy": True,
        "highlightLines": "2",
    }
