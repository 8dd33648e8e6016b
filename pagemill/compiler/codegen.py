"""Python code generation for compiled page modules."""

from __future__ import annotations

import pprint
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..models import Heading, Metadata
from .syntax import (
    ATTR_BOOLEAN,
    ATTR_EXPRESSION,
    ATTR_SPREAD,
    ATTR_STRING,
    BLOCKQUOTE,
    BREAK,
    CODE,
    DELETE,
    ELEMENT,
    EMPHASIS,
    ESM,
    EXPRESSION,
    HEADING,
    IMAGE,
    INLINE_CODE,
    LINK,
    LIST,
    LIST_ITEM,
    PARAGRAPH,
    STRONG,
    TABLE,
    TABLE_CELL,
    TABLE_ROW,
    TEXT,
    THEMATIC_BREAK,
    YAML,
    Attribute,
    Node,
)

MODULE_TEMPLATE = "module.py.j2"
METADATA_TEMPLATE = "metadata.py.j2"

_SIMPLE_TAGS = {
    PARAGRAPH: "p",
    EMPHASIS: "em",
    STRONG: "strong",
    DELETE: "del",
    BLOCKQUOTE: "blockquote",
    LIST_ITEM: "li",
    BREAK: "br",
    THEMATIC_BREAK: "hr",
}


def literal(value: Any) -> str:
    """Deterministic Python literal for metadata-like values."""
    return pprint.pformat(value, sort_dicts=False, width=88)


class CodeGenerator:
    """Renders syntax trees into Python page modules through jinja2 templates."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def generate(
        self,
        tree: Node,
        metadata: Metadata,
        toc: Sequence[Heading],
        *,
        remote: bool = False,
    ) -> str:
        imports: List[str] = []
        exports: List[Tuple[str, str]] = []
        for child in tree.children:
            if child.type != ESM:
                continue
            imports.extend(child.data.get("imports", []))
            for name, expression in child.data.get("exports", {}).items():
                if name != "metadata":
                    exports.append((name, expression))

        body = [
            rendered
            for rendered in (self.expression(child) for child in tree.children if child.type not in {YAML, ESM})
            if rendered is not None
        ]
        template = self._env.get_template(MODULE_TEMPLATE)
        return template.render(
            file_path=metadata.file_path,
            remote=remote,
            imports=imports,
            exports=exports,
            metadata=literal(metadata.to_dict()),
            toc=literal([heading.to_dict() for heading in toc]),
            body=body,
        )

    def generate_metadata(self, metadata: Metadata) -> str:
        template = self._env.get_template(METADATA_TEMPLATE)
        return template.render(file_path=metadata.file_path, metadata=literal(metadata.to_dict()))

    # ------------------------------------------------------------------
    # Expression emitters

    def expression(self, node: Node) -> Optional[str]:
        """Return a Python expression building `node`, or ``None`` to drop it."""
        if node.type == TEXT:
            return repr(node.value)
        if node.type == EXPRESSION:
            return f"({node.value})" if node.value else None
        if node.type == HEADING:
            props = {"id": node.data["id"]} if node.data.get("id") else {}
            return self._call(f"h{node.depth}", _props(props), node.children)
        if node.type == INLINE_CODE:
            return self._call("code", "None", [], extra=[repr(node.value)])
        if node.type == CODE:
            return self._code_block(node)
        if node.type == LINK:
            props = {"href": node.url or ""}
            if node.title:
                props["title"] = node.title
            return self._call("a", _props(props), node.children)
        if node.type == IMAGE:
            props = {"src": node.url or "", "alt": node.value}
            if node.title:
                props["title"] = node.title
            return self._call("img", _props(props), [])
        if node.type == LIST:
            props: Dict[str, Any] = {}
            start = node.data.get("start")
            if node.ordered and start not in (None, 1):
                props["start"] = start
            return self._call("ol" if node.ordered else "ul", _props(props), node.children)
        if node.type == TABLE:
            return self._table(node)
        if node.type == ELEMENT:
            return self._call(node.name or "div", _attributes(node.attributes), node.children)
        tag = _SIMPLE_TAGS.get(node.type)
        if tag is not None:
            return self._call(tag, "None", node.children)
        raise ValueError(f"Unsupported node type for code generation: {node.type}")

    def _call(self, tag: str, props: str, children: Sequence[Node], extra: Sequence[str] = ()) -> str:
        parts = [f"_c({tag!r})", props]
        parts.extend(extra)
        for child in children:
            rendered = self.expression(child)
            if rendered is not None:
                parts.append(rendered)
        return f"h({', '.join(parts)})"

    def _code_block(self, node: Node) -> str:
        pre: Dict[str, Any] = {}
        for key in ("language", "filename", "copy", "showLineNumbers", "highlightLines"):
            if key in node.data:
                pre[f"data-{key}"] = node.data[key]
        code: Dict[str, Any] = {}
        if node.classes:
            code["className"] = " ".join(node.classes)
        if "html" in node.data:
            code["html"] = node.data["html"]
        inner = self._call("code", _props(code), [], extra=[repr(node.value)])
        return f"h(_c('pre'), {_props(pre)}, {inner})"

    def _table(self, node: Node) -> str:
        aligns = node.data.get("align", [])
        head: List[str] = []
        body: List[str] = []
        for row in node.children:
            header = bool(row.data.get("header"))
            cells = []
            for index, cell in enumerate(row.children):
                align = aligns[index] if index < len(aligns) else None
                props = _props({"align": align} if align else {})
                cells.append(self._call("th" if header else "td", props, cell.children))
            rendered = f"h(_c('tr'), None, {', '.join(cells)})" if cells else "h(_c('tr'), None)"
            (head if header else body).append(rendered)
        sections = [f"h(_c('thead'), None, {', '.join(head)})"] if head else []
        if body:
            sections.append(f"h(_c('tbody'), None, {', '.join(body)})")
        return f"h(_c('table'), None, {', '.join(sections)})"

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )


def _props(values: Dict[str, Any]) -> str:
    if not values:
        return "None"
    return "{" + ", ".join(f"{key!r}: {value!r}" for key, value in values.items()) + "}"


def _attributes(attributes: Sequence[Attribute]) -> str:
    if not attributes:
        return "None"
    parts = []
    for attribute in attributes:
        if attribute.kind == ATTR_SPREAD:
            parts.append(f"**({attribute.value})")
        elif attribute.kind == ATTR_EXPRESSION:
            parts.append(f"{attribute.name!r}: ({attribute.value})")
        elif attribute.kind in {ATTR_STRING, ATTR_BOOLEAN}:
            parts.append(f"{attribute.name!r}: {attribute.value!r}")
        else:
            parts.append(f"{attribute.name!r}: {literal(attribute.value)}")
    return "{" + ", ".join(parts) + "}"


__all__ = ["CodeGenerator", "literal"]
