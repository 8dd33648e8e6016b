"""Rewrites math annotations into MathJax hand-off elements."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from ..compiler.syntax import (
    ATTR_LITERAL,
    CODE,
    ELEMENT,
    ESM,
    INLINE_CODE,
    MATH_CLASS,
    MATH_INLINE_CLASS,
    MODULE_SCOPE_TYPES,
    TEXT,
    YAML,
    Attribute,
    Node,
)
from .base import Stage, StageContext

COMPONENTS_IMPORT = "from pagemill.components import MathJax, MathJaxContext"

DEFAULT_INLINE = ("\\(", "\\)")
DEFAULT_DISPLAY = ("\\[", "\\]")


def bracket_pair(config: Mapping[str, Any], key: str, default: Tuple[str, str]) -> Tuple[str, str]:
    """First delimiter pair configured under `config["tex"][key]`, else `default`."""
    tex = config.get("tex") if isinstance(config, Mapping) else None
    pairs = tex.get(key) if isinstance(tex, Mapping) else None
    if isinstance(pairs, (list, tuple)) and pairs:
        first = pairs[0]
        if isinstance(first, (list, tuple)) and len(first) == 2:
            return str(first[0]), str(first[1])
    return default


class MathStage(Stage):
    """Replaces math code nodes with `MathJax` and wraps the page in `MathJaxContext`."""

    name = "math"

    def options_for(self, compile_options: Any) -> Dict[str, Any]:
        latex = getattr(compile_options, "latex", None)
        return latex.stage_options() if latex is not None else {}

    def run(self, tree: Node, context: StageContext) -> Node:
        config = context.options.get("config") or {}
        inline = bracket_pair(config, "inlineMath", DEFAULT_INLINE)
        display = bracket_pair(config, "displayMath", DEFAULT_DISPLAY)

        if not self._rewrite(tree, inline, display):
            return tree
        context.mark_participated()

        front: List[Node] = [child for child in tree.children if child.type == YAML]
        declarations: List[Node] = [child for child in tree.children if child.type == ESM]
        rest: List[Node] = [child for child in tree.children if child.type not in MODULE_SCOPE_TYPES]

        attributes: List[Attribute] = []
        if context.options.get("src"):
            attributes.append(Attribute(name="src", value=context.options["src"]))
        if config:
            attributes.append(Attribute(name="config", value=config))
        wrapper = Node(type=ELEMENT, name="MathJaxContext", attributes=attributes, children=rest)

        if not context.remote:
            declarations.insert(
                0,
                Node(type=ESM, value=COMPONENTS_IMPORT, data={"imports": [COMPONENTS_IMPORT], "exports": {}}),
            )
        tree.children = front + declarations + [wrapper]
        return tree

    def _rewrite(self, node: Node, inline: Tuple[str, str], display: Tuple[str, str]) -> bool:
        found = False
        for index, child in enumerate(node.children):
            if child.type in {CODE, INLINE_CODE} and MATH_CLASS in child.classes:
                is_inline = MATH_INLINE_CLASS in child.classes
                opening, closing = inline if is_inline else display
                node.children[index] = Node(
                    type=ELEMENT,
                    name="MathJax",
                    attributes=[Attribute(name="inline", value=True, kind=ATTR_LITERAL)] if is_inline else [],
                    children=[Node(type=TEXT, value=f"{opening}{child.value}{closing}", line=child.line)],
                    line=child.line,
                )
                found = True
            elif self._rewrite(child, inline, display):
                found = True
        return found


__all__ = ["COMPONENTS_IMPORT", "DEFAULT_DISPLAY", "DEFAULT_INLINE", "MathStage", "bracket_pair"]
