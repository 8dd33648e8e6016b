"""CLI parser behaviour tests."""

from __future__ import annotations

import json

import pytest

from pagemill.cli import _build_parser, main
from tests._fixtures.content_builder import ContentBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build"])
    assert args.verbose is True
    assert args.command == "build"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["build", "--verbose"])
    assert args.verbose is True
    assert args.command == "build"


def test_cli_build_flags() -> None:
    args = _build_parser().parse_args(["build", "--dev", "--no-cache", "--project", "site"])
    assert args.dev is True
    assert args.no_cache is True
    assert args.project == "site"


def test_cli_compile_and_tsdoc_arguments() -> None:
    parser = _build_parser()

    compile_args = parser.parse_args(["compile", "page.mdx", "--metadata"])
    tsdoc_args = parser.parse_args(["tsdoc", "types.ts", "--export", "Props", "--flattened"])
    serve_args = parser.parse_args(["serve", "--port", "9001"])

    assert (compile_args.file, compile_args.metadata) == ("page.mdx", True)
    assert (tsdoc_args.export_name, tsdoc_args.flattened) == ("Props", True)
    assert (serve_args.host, serve_args.port) == ("127.0.0.1", 9001)


def test_compile_command_prints_module(
    content_builder: ContentBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    content_builder.write({"page.md": "# Hello\n"})
    content_builder.configure()

    main(["compile", str(content_builder.content / "page.md"), "--project", str(content_builder.root)])

    output = capsys.readouterr().out
    assert "def default(components=None, **props):" in output
    assert "'title': 'Hello'" in output


def test_tsdoc_command_prints_json(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "types.ts"
    source.write_text("export interface P { x: number }\n", encoding="utf-8")

    main(["tsdoc", str(source), "--export", "P"])

    data = json.loads(capsys.readouterr().out)
    assert data["name"] == "P"
    assert data["entries"] == [{"name": "x", "type": "number"}]


def test_build_failure_exits_nonzero(content_builder: ContentBuilder) -> None:
    content_builder.write({"bad.mdx": "text {oops(}\n"})
    content_builder.configure()

    with pytest.raises(SystemExit) as excinfo:
        main(["build", "--no-cache", "--project", str(content_builder.root)])

    assert excinfo.value.code == 1
