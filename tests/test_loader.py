"""Tests for page loading and static params."""

from __future__ import annotations

import pytest

from pagemill.build import Builder
from pagemill.compiler.cache import CompileCache
from pagemill.errors import CompileError, NotFoundError
from pagemill.loader import ArtifactModuleLoader, Pages
from pagemill.models import MODE_FULL, MODE_METADATA
from pagemill.runtime import text_content
from tests._fixtures.content_builder import ContentBuilder


def _builder(content_builder: ContentBuilder, config: str = "", **kwargs) -> Builder:
    builder = Builder(content_builder.configure(config), **kwargs)
    builder.refresh()
    return builder


def test_import_page_returns_render_toc_and_metadata(content_builder: ContentBuilder) -> None:
    content_builder.write({"guide/intro.md": "# Intro\n\n## Details\n\nBody text.\n"})
    builder = _builder(content_builder)

    page = builder.pages.import_page(["guide", "intro"])

    assert page["metadata"]["title"] == "Intro"
    assert page["metadata"]["file_path"] == "guide/intro.md"
    assert page["toc"] == [{"depth": 2, "value": "Details", "id": "details"}]
    assert "Body text." in text_content(page["default"]())


def test_metadata_request_never_compiles_full_module(content_builder: ContentBuilder) -> None:
    content_builder.write({"a.md": "---\ntitle: Alpha\n---\n\nText\n"})
    cache = CompileCache()
    builder = _builder(content_builder, cache=cache)

    loaded = builder.pages.load_request("a?metadata")

    assert loaded == {"metadata": {"title": "Alpha", "file_path": "a.md"}}
    assert CompileCache.key("a.md", mode=MODE_METADATA) in cache
    assert CompileCache.key("a.md", mode=MODE_FULL) not in cache


def test_unknown_route_is_not_found(content_builder: ContentBuilder) -> None:
    content_builder.write({"index.md": "# Home\n"})
    builder = _builder(content_builder)

    with pytest.raises(NotFoundError):
        builder.pages.import_page(["missing"])


def test_compile_errors_propagate_with_location(content_builder: ContentBuilder) -> None:
    content_builder.write({"ok.md": "# Ok\n", "bad.mdx": "# Bad\n\n<Open>\n"})
    builder = _builder(content_builder, "strict: false\n")

    with pytest.raises(CompileError) as excinfo:
        builder.pages.import_page(["bad"])

    assert excinfo.value.file_path == "bad.mdx"
    assert excinfo.value.line == 3


def test_percent_encoded_segments_resolve(content_builder: ContentBuilder) -> None:
    content_builder.write({"hello world.md": "# Hello\n"})
    builder = _builder(content_builder)

    assert builder.pages.import_metadata(["hello%20world"])["title"] == "Hello"


def test_static_params_feed_back_into_import_page(content_builder: ContentBuilder) -> None:
    content_builder.write({"a%2520b.md": "# Literal\n"})
    builder = _builder(content_builder)

    params = builder.pages.generate_static_params_for("slug")()

    assert params == [{"slug": ["a%20b"]}]
    assert builder.pages.import_page(params[0]["slug"])["metadata"]["title"] == "Literal"
    assert builder.pages.import_metadata(["a%2520b"])["file_path"] == "a%2520b.md"


class _BrokenLoader:
    def load(self, path, locale="", *, mode=MODE_FULL):
        raise RuntimeError("disk on fire")


def test_unexpected_loader_errors_propagate(content_builder: ContentBuilder) -> None:
    content_builder.write({"page.md": "# Page\n"})
    builder = _builder(content_builder)
    pages = Pages(builder.registry, _BrokenLoader())

    with pytest.raises(RuntimeError, match="disk on fire"):
        pages.import_page(["page"])


def test_cached_module_is_reused_until_source_changes(content_builder: ContentBuilder) -> None:
    content_builder.write({"page.md": "# One\n"})
    builder = _builder(content_builder)

    first = builder.loader.load("page.md")
    assert builder.loader.load("page.md") is first

    content_builder.write({"page.md": "# Two\n"})
    second = builder.loader.load("page.md")
    assert second is not first
    assert second.metadata.title == "Two"


def test_static_params_cover_every_route(content_builder: ContentBuilder) -> None:
    content_builder.write({"index.md": "", "docs/a.md": "", "docs/b/index.md": ""})
    builder = _builder(content_builder)

    params = builder.pages.generate_static_params_for("mdxPath")()

    assert sorted(params, key=lambda item: item["mdxPath"]) == [
        {"mdxPath": []},
        {"mdxPath": ["docs", "a"]},
        {"mdxPath": ["docs", "b"]},
    ]


def test_static_params_include_locale_key(content_builder: ContentBuilder) -> None:
    content_builder.write({"en/index.md": "", "de/index.md": "", "de/kontakt.md": ""})
    builder = _builder(content_builder, "locales: [en, de]\n")

    params = builder.pages.generate_static_params_for("slug", "lang")()

    assert {"lang": "en", "slug": []} in params
    assert {"lang": "de", "slug": ["kontakt"]} in params
    assert len(params) == 3


def test_locales_do_not_fall_back_to_each_other(content_builder: ContentBuilder) -> None:
    content_builder.write({"en/index.md": "", "en/only-en.md": "# English\n", "de/index.md": ""})
    builder = _builder(content_builder, "locales: [en, de]\n")

    assert builder.pages.import_metadata(["only-en"], "en")["title"] == "English"
    with pytest.raises(NotFoundError):
        builder.pages.import_metadata(["only-en"], "de")


def test_artifact_loader_serves_built_pages(content_builder: ContentBuilder) -> None:
    content_builder.write({"index.md": "# Home\n\n## Section\n"})
    config = content_builder.configure()
    builder = Builder(config)
    builder.build()

    pages = Pages(builder.registry, ArtifactModuleLoader(config.output_root))
    page = pages.import_page([])

    assert page["metadata"]["title"] == "Home"
    assert page["toc"] == [{"depth": 2, "value": "Section", "id": "section"}]
    assert text_content(page["default"]()) == "HomeSection"
