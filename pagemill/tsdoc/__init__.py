"""Type documentation extraction for TypeScript sources."""

from __future__ import annotations

from .extractor import TypeDocExtractor, generate_definition
from .table import build_table, linkify
from .types import ReturnField, Signature, TypeDocDefinition, TypeField

__all__ = [
    "ReturnField",
    "Signature",
    "TypeDocDefinition",
    "TypeDocExtractor",
    "TypeField",
    "build_table",
    "generate_definition",
    "linkify",
]
