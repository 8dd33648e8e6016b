"""Tests for heading anchors and table-of-contents collection."""

from __future__ import annotations

from pagemill.compiler.syntax import DocumentParser
from pagemill.models import Heading
from pagemill.stages import HeadingsStage, StageContext
from pagemill.stages.headings import Slugger


def test_toc_collects_depth_two_to_six_in_order() -> None:
    tree = DocumentParser().parse("# Title\n\n## First\n\n### Nested `code`\n\n###### Deep\n\n## Second\n")

    HeadingsStage().run(tree, StageContext())

    assert tree.data["toc"] == (
        Heading(depth=2, value="First", id="first"),
        Heading(depth=3, value="Nested code", id="nested-code"),
        Heading(depth=6, value="Deep", id="deep"),
        Heading(depth=2, value="Second", id="second"),
    )


def test_duplicate_headings_get_suffixed_ids() -> None:
    tree = DocumentParser().parse("## Usage\n\n## Usage\n\n## Usage\n")

    HeadingsStage().run(tree, StageContext())

    assert [node.data["id"] for node in tree.children] == ["usage", "usage-1", "usage-2"]


def test_custom_ids_are_kept_and_reserved() -> None:
    tree = DocumentParser().parse("## Setup [#install]\n\n## Install\n")

    HeadingsStage().run(tree, StageContext())

    assert [node.data["id"] for node in tree.children] == ["install", "install-1"]


def test_headings_inside_components_are_collected() -> None:
    tree = DocumentParser().parse("<Tabs>\n  ## Inside\n</Tabs>\n")

    HeadingsStage().run(tree, StageContext())

    assert [heading.value for heading in tree.data["toc"]] == ["Inside"]


def test_slugger_strips_punctuation() -> None:
    slugger = Slugger()

    assert slugger.slug("What's New?") == "whats-new"
    assert slugger.slug("API: v2.0") == "api-v20"
