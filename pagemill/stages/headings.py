"""Table-of-contents collection and heading anchor ids."""

from __future__ import annotations

from typing import List, Set

from mdit_py_plugins.anchors.index import slugify, unique_slug

from ..compiler.syntax import HEADING, Node, text_of, walk
from ..models import Heading
from .base import Stage, StageContext

TOC_MIN_DEPTH = 2
TOC_MAX_DEPTH = 6


class Slugger:
    """GitHub-style slugs, de-duplicated within one document."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def slug(self, value: str) -> str:
        return unique_slug(slugify(value), self._seen)

    def reserve(self, value: str) -> str:
        self._seen.add(value)
        return value


class HeadingsStage(Stage):
    """Assigns anchor ids to headings and collects the TOC onto the root node."""

    name = "headings"

    def run(self, tree: Node, context: StageContext) -> Node:
        slugger = Slugger()
        toc: List[Heading] = []
        for node, _ in walk(tree):
            if node.type != HEADING:
                continue
            value = text_of(node).strip()
            custom = node.data.get("id")
            node.data["id"] = slugger.reserve(custom) if custom else slugger.slug(value)
            if TOC_MIN_DEPTH <= node.depth <= TOC_MAX_DEPTH:
                toc.append(Heading(depth=node.depth, value=value, id=node.data["id"]))
            context.mark_participated()
        tree.data["toc"] = tuple(toc)
        return tree


__all__ = ["HeadingsStage", "Slugger", "TOC_MAX_DEPTH", "TOC_MIN_DEPTH"]
