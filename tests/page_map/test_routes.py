"""Tests for route tables and the locale registry."""

from __future__ import annotations

import pytest

from pagemill.errors import DuplicateRouteError, NotFoundError
from pagemill.page_map import PageMapBuilder, RouteRegistry, compile_route_table, normalize_route
from tests._fixtures.content_builder import ContentBuilder


def test_route_table_maps_routes_to_source_paths(content_builder: ContentBuilder) -> None:
    content_builder.write({"index.md": "", "guide/index.mdx": "", "guide/setup.md": ""})
    root = PageMapBuilder().build(content_builder.scan())[""]

    table = compile_route_table(root)

    assert table.to_dict() == {
        "guide": "guide/index.mdx",
        "guide/setup": "guide/setup.md",
        "": "index.md",
    }
    assert table.lookup("/guide/setup/") == "guide/setup.md"
    assert "guide" in table
    assert len(table) == 3


def test_file_and_folder_index_colliding_is_an_error(content_builder: ContentBuilder) -> None:
    content_builder.write({"a/b.md": "", "a/b/index.md": ""})
    root = PageMapBuilder().build(content_builder.scan())[""]

    with pytest.raises(DuplicateRouteError) as excinfo:
        compile_route_table(root)

    message = str(excinfo.value)
    assert "a/b.md" in message
    assert "a/b/index.md" in message
    assert excinfo.value.route == "a/b"


def test_percent_encoded_routes_are_decoded_once(content_builder: ContentBuilder) -> None:
    content_builder.write({"hello world.md": ""})
    root = PageMapBuilder().build(content_builder.scan())[""]

    table = compile_route_table(root)

    assert table.lookup("hello%20world") == "hello world.md"
    assert normalize_route("/a%2520b/") == "a%20b"


def test_locale_tables_strip_the_locale_prefix(content_builder: ContentBuilder) -> None:
    content_builder.write({"en/index.md": "", "en/about.md": ""})
    root = PageMapBuilder().build(content_builder.scan(("en",)))["en"]

    assert compile_route_table(root, "en").to_dict() == {"about": "about.md", "": "index.md"}


def test_registry_publishes_snapshots_per_locale(content_builder: ContentBuilder) -> None:
    content_builder.write({"en/index.md": "", "de/index.md": "", "de/kontakt.md": ""})
    trees = PageMapBuilder().build(content_builder.scan(("en", "de")))
    registry = RouteRegistry(["en", "de"])

    with pytest.raises(NotFoundError):
        registry.route_table("en")

    tables = registry.publish(trees)

    assert set(tables) == {"en", "de"}
    assert registry.lookup("kontakt", "de") == "kontakt.md"
    assert registry.get("kontakt", "en") is None
    assert registry.page_map("de") is trees["de"]
    with pytest.raises(NotFoundError):
        registry.lookup("", "fr")


def test_failed_publish_keeps_previous_snapshot(content_builder: ContentBuilder) -> None:
    content_builder.write({"a.md": ""})
    registry = RouteRegistry()
    registry.publish(PageMapBuilder().build(content_builder.scan()))

    content_builder.write({"a/index.md": ""})
    broken = PageMapBuilder().build(content_builder.scan())
    with pytest.raises(DuplicateRouteError):
        registry.publish(broken)

    assert registry.route_table().to_dict() == {"a": "a.md"}
