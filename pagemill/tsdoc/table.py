"""Row models for rendering type documentation tables."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .. import components
from ..config import LatexConfig
from ..runtime import evaluate
from ..stages.headings import Slugger
from .types import ReturnField, Signature, TypeDocDefinition, TypeField

RenderMarkdown = Callable[[Optional[str]], Any]

NO_PARAMETERS_TEXT = "This function does not accept any parameters."

_CHUNK_RE = re.compile(r"\w+|\W+")


@dataclass(frozen=True)
class TypeChunk:
    text: str
    href: Optional[str] = None


@dataclass
class Row:
    id: str
    name: str
    type: List[TypeChunk]
    optional: bool = False
    description: Any = None
    default: Optional[List[TypeChunk]] = None


@dataclass
class ReturnRow:
    """An unnamed return value rendered as a single `Type:` card."""

    id: str
    type: List[TypeChunk]
    description: Any = None


@dataclass
class SignatureTable:
    index: Union[int, str]
    params: List[Row] = field(default_factory=list)
    returns: Union[List[Row], ReturnRow, None] = None
    returns_description: Any = None

    @property
    def no_parameters(self) -> bool:
        return not self.params


@dataclass
class TableModel:
    name: str
    fields: Optional[List[Row]] = None
    signatures: List[SignatureTable] = field(default_factory=list)

    @property
    def is_function(self) -> bool:
        return self.fields is None

    @property
    def tab_labels(self) -> List[str]:
        """Labels for multi-signature layouts; empty when there is one signature."""
        if len(self.signatures) < 2:
            return []
        return [f"Function Signature {index}" for index in range(1, len(self.signatures) + 1)]


def linkify(type_text: str, type_link_map: Optional[Mapping[str, str]] = None) -> List[TypeChunk]:
    """Split a type into chunks, linking identifiers present in `type_link_map`."""
    links = type_link_map or {}
    chunks: List[TypeChunk] = []
    for part in _CHUNK_RE.findall(type_text):
        href = links.get(part)
        if href:
            chunks.append(TypeChunk(part, href))
        elif chunks and chunks[-1].href is None:
            chunks[-1] = TypeChunk(chunks[-1].text + part)
        else:
            chunks.append(TypeChunk(part))
    return chunks


def render_markdown_default(description: Optional[str]) -> Any:
    """Compile a description as remote content and evaluate it to an element tree."""
    if not description:
        return None
    from ..compiler.pipeline import CompilerOptions, DocumentCompiler

    options = CompilerOptions(latex=LatexConfig(enabled=True))
    compiled = DocumentCompiler(options, stages=[]).compile_remote(description)
    scope: Dict[str, Any] = {
        "MathJax": components.MathJax,
        "MathJaxContext": components.MathJaxContext,
    }
    return evaluate(compiled.code, scope=scope)


def build_table(
    definition: TypeDocDefinition,
    render_markdown: Optional[RenderMarkdown] = None,
    type_link_map: Optional[Mapping[str, str]] = None,
) -> TableModel:
    render = render_markdown or render_markdown_default
    links = dict(type_link_map or {})
    if definition.signatures is None:
        return TableModel(name=definition.name, fields=_field_rows(definition.entries or [], render, links))

    many = len(definition.signatures) > 1
    returns_description = render(definition.tags.get("returns"))
    tables = []
    for position, signature in enumerate(definition.signatures, start=1):
        tables.append(
            _signature_table(signature, position if many else "", returns_description, render, links)
        )
    return TableModel(name=definition.name, signatures=tables)


def _signature_table(
    signature: Signature,
    index: Union[int, str],
    returns_description: Any,
    render: RenderMarkdown,
    links: Mapping[str, str],
) -> SignatureTable:
    table = SignatureTable(
        index=index,
        params=_field_rows(signature.params, render, links),
        returns_description=returns_description,
    )
    if isinstance(signature.returns, ReturnField):
        table.returns = ReturnRow(
            id=f"returns{index}",
            type=linkify(signature.returns.type, links),
            description=returns_description,
        )
    else:
        slugger = Slugger()
        table.returns = [
            Row(
                id=slugger.slug(item.name),
                name=item.name,
                type=linkify(item.type, links),
                optional=item.optional,
                description=render(item.description or item.tags.get("description")),
            )
            for item in signature.returns
        ]
    return table


def _field_rows(fields: List[TypeField], render: RenderMarkdown, links: Mapping[str, str]) -> List[Row]:
    slugger = Slugger()
    rows = []
    for item in fields:
        tags = item.tags or {}
        default = tags.get("default") or tags.get("defaultValue")
        parts = [item.description or tags.get("description")]
        if tags.get("deprecated"):
            parts.append(f"**Deprecated**: {tags['deprecated']}")
        text = "\n".join(part for part in parts if part)
        rows.append(
            Row(
                id=slugger.slug(item.name),
                name=item.name,
                type=linkify(item.type, links),
                optional=item.optional,
                description=render(text or None),
                default=linkify(default, links) if default else None,
            )
        )
    return rows


__all__ = [
    "NO_PARAMETERS_TEXT",
    "ReturnRow",
    "Row",
    "SignatureTable",
    "TableModel",
    "TypeChunk",
    "build_table",
    "linkify",
    "render_markdown_default",
]
