"""Document transform pipeline.

Import `pagemill.compiler.pipeline` for `DocumentCompiler`; this package module
only exposes the syntax tree so stages can import it without a cycle.
"""

from __future__ import annotations

from .syntax import Attribute, DocumentParser, Node, ParseOptions, text_of, walk

__all__ = ["Attribute", "DocumentParser", "Node", "ParseOptions", "text_of", "walk"]
