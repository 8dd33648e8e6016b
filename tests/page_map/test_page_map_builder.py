"""Tests for page-map construction."""

from __future__ import annotations

from pathlib import Path

import pytest

from pagemill.errors import CompileError, NotFoundError
from pagemill.page_map import (
    Document,
    Folder,
    OrderingFile,
    PageMapBuilder,
    find_subtree,
    iter_documents,
    page_map_from_list,
    page_map_to_list,
    prettify_name,
)
from pagemill.scanner import SourceTreeScanner
from tests._fixtures.content_builder import ContentBuilder


def _names(folder: Folder) -> list[str]:
    return [child.name for child in folder.named_children()]


def test_index_document_takes_the_folder_route(content_builder: ContentBuilder) -> None:
    content_builder.write({"index.md": "# Home\n", "docs/index.md": "# Docs\n", "docs/setup.md": "# Setup\n"})

    root = PageMapBuilder().build(content_builder.scan())[""]

    index = next(child for child in root.named_children() if child.name == "index")
    assert isinstance(index, Document)
    assert index.route == "/"
    docs = next(child for child in root.named_children() if child.name == "docs")
    assert isinstance(docs, Folder)
    assert docs.route == "/docs"
    assert {child.name: child.route for child in docs.named_children()} == {
        "index": "/docs",
        "setup": "/docs/setup",
    }


def test_ordering_rank_sorts_siblings(content_builder: ContentBuilder) -> None:
    content_builder.write(
        {
            "_meta.yml": "a:\n  rank: 2\nb:\n  rank: 1\n",
            "a.md": "# A\n",
            "b.md": "# B\n",
            "c.md": "# C\n",
        }
    )

    root = PageMapBuilder().build(content_builder.scan())[""]

    assert _names(root) == ["b", "a", "c"]
    assert isinstance(root.children[0], OrderingFile)


def test_listed_keys_sort_before_unlisted_siblings(content_builder: ContentBuilder) -> None:
    content_builder.write(
        {
            "_meta.json": '{"zeta": "Last Letter", "alpha": "First"}',
            "alpha.md": "",
            "beta.md": "",
            "zeta.md": "",
        }
    )

    root = PageMapBuilder().build(content_builder.scan())[""]

    assert _names(root) == ["zeta", "alpha", "beta"]
    zeta = next(root.named_children())
    assert zeta.title == "Last Letter"


def test_titles_fall_back_to_metadata_then_file_name(content_builder: ContentBuilder) -> None:
    content_builder.write({"getting-started.md": "No heading here.\n", "guide.md": "# The Guide\n"})

    def reader(path: Path, locale: str) -> dict[str, object]:
        title = "The Guide" if path.stem == "guide" else prettify_name(path.stem)
        return {"title": title, "file_path": path.name, "tags": ["x"]}

    root = PageMapBuilder(metadata_reader=reader).build(content_builder.scan())[""]

    documents = {document.name: document for document in iter_documents(root)}
    assert documents["guide"].title == "The Guide"
    assert documents["getting-started"].title == "Getting Started"
    assert documents["guide"].front_matter == {"title": "The Guide", "tags": ["x"]}


def test_folder_items_override_applies_to_children(content_builder: ContentBuilder) -> None:
    content_builder.write(
        {
            "_meta.yml": "api:\n  title: API Reference\n  items:\n    z: Zed\n",
            "api/a.md": "",
            "api/z.md": "",
        }
    )

    root = PageMapBuilder().build(content_builder.scan())[""]

    api = next(root.named_children())
    assert isinstance(api, Folder)
    assert api.title == "API Reference"
    assert _names(api) == ["z", "a"]
    assert next(api.named_children()).title == "Zed"


def test_hidden_entries_stay_in_the_tree(content_builder: ContentBuilder) -> None:
    content_builder.write({"_meta.yml": "secret:\n  hidden: true\n", "secret.md": "", "public.md": ""})

    root = PageMapBuilder().build(content_builder.scan())[""]

    secret = next(child for child in root.named_children() if child.name == "secret")
    assert secret.hidden is True
    assert secret.to_dict()["hidden"] is True


def test_locale_trees_are_rooted_under_the_locale(content_builder: ContentBuilder) -> None:
    content_builder.write({"en/index.md": "", "en/about.md": "", "de/index.md": ""})

    trees = PageMapBuilder().build(content_builder.scan(("en", "de")))

    assert trees["en"].route == "/en"
    assert {document.route for document in iter_documents(trees["en"])} == {"/en", "/en/about"}
    assert [document.route for document in iter_documents(trees["de"])] == ["/de"]


def test_base_path_prefixes_every_route(content_builder: ContentBuilder) -> None:
    content_builder.write({"guide/intro.md": ""})

    root = PageMapBuilder(base_path="/docs").build(content_builder.scan())[""]

    assert [document.route for document in iter_documents(root)] == ["/docs/guide/intro"]


def test_metadata_failure_is_fatal_only_in_strict_mode(content_builder: ContentBuilder) -> None:
    content_builder.write({"broken.md": ""})

    def reader(path: Path, locale: str) -> dict[str, object]:
        raise CompileError("bad front matter", file_path=path.name, line=2)

    with pytest.raises(CompileError):
        PageMapBuilder(metadata_reader=reader).build(content_builder.scan())

    root = PageMapBuilder(metadata_reader=reader, strict=False).build(content_builder.scan())[""]
    assert next(iter_documents(root)).title == "Broken"


def test_rebuild_subtree_only_touches_changed_folder(content_builder: ContentBuilder) -> None:
    content_builder.write({"a/one.md": "", "b/two.md": ""})
    builder = PageMapBuilder()
    root = builder.build(content_builder.scan())[""]
    untouched = next(child for child in root.named_children() if child.name == "b")

    content_builder.write({"a/three.md": ""})
    updated = builder.rebuild_subtree(root, "a", SourceTreeScanner(), content_builder.content)

    folder_a = next(child for child in updated.named_children() if child.name == "a")
    assert isinstance(folder_a, Folder)
    assert _names(folder_a) == ["one", "three"]
    assert next(child for child in updated.named_children() if child.name == "b") is untouched
    assert _names(root.children[0]) == ["one"]


def test_find_subtree_walks_folders_by_name(content_builder: ContentBuilder) -> None:
    content_builder.write({"guide/advanced/deep.md": "", "guide/intro.md": ""})
    root = PageMapBuilder().build(content_builder.scan())[""]

    children = find_subtree(root, "/guide/advanced")

    assert [child.name for child in children] == ["deep"]
    with pytest.raises(NotFoundError):
        find_subtree(root, "/guide/missing")


def test_page_map_list_round_trip_preserves_structure(content_builder: ContentBuilder) -> None:
    content_builder.write({"_meta.yml": "x: Ex\n", "x.md": "", "y/z.md": ""})
    root = PageMapBuilder().build(content_builder.scan())[""]

    restored = page_map_from_list(page_map_to_list(root))

    assert page_map_to_list(restored) == page_map_to_list(root)
