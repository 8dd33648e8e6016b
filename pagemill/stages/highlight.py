"""Code block annotations and syntax highlighting hand-off."""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, Optional

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from ..compiler.syntax import CODE, MATH_CLASS, Node, walk
from ..logging import get_logger
from .base import Stage, StageContext

Highlighter = Callable[[str, str], str]

_META_RE = re.compile(r"(\{[^}]*\})|([A-Za-z][\w-]*)(?:=(?:\"([^\"]*)\"|'([^']*)'|(\S+)))?")
_FALSE = {"false", "0", "no", "off"}

_LOGGER = get_logger("stages.highlight")


def canonical_language(lang: Optional[str]) -> str:
    """Resolve a fence language through Pygments aliases (`py` -> `python`)."""
    if not lang:
        return "text"
    try:
        lexer = get_lexer_by_name(lang)
    except ClassNotFound:
        return lang.lower()
    return lexer.aliases[0] if lexer.aliases else lang.lower()


def pygments_highlighter(code: str, language: str) -> str:
    try:
        lexer = get_lexer_by_name(language)
    except ClassNotFound:
        lexer = get_lexer_by_name("text")
    return pygments_highlight(code, lexer, HtmlFormatter(nowrap=True))


def parse_meta(meta: Optional[str]) -> Dict[str, Any]:
    """Parse a fence meta string such as `filename="a.py" copy=false {1,3-4}`."""
    parsed: Dict[str, Any] = {}
    for match in _META_RE.finditer(meta or ""):
        lines, key, double, single, bare = match.groups()
        if lines:
            parsed["highlightLines"] = lines[1:-1]
            continue
        value = next((item for item in (double, single, bare) if item is not None), None)
        parsed[key] = True if value is None else value
    return parsed


class HighlightStage(Stage):
    """Annotates code blocks and hands their source to a highlighter."""

    name = "highlight"

    def __init__(self, highlighter: Optional[Highlighter] = None) -> None:
        self.highlighter = highlighter or pygments_highlighter

    def options_for(self, compile_options: Any) -> Dict[str, Any]:
        return {
            "enabled": getattr(compile_options, "code_highlight", True),
            "default_show_copy_code": getattr(compile_options, "default_show_copy_code", False),
        }

    def run(self, tree: Node, context: StageContext) -> Node:
        if not context.options.get("enabled", True):
            return tree
        default_copy = bool(context.options.get("default_show_copy_code", False))
        for node, _ in walk(tree):
            if node.type != CODE or MATH_CLASS in node.classes:
                continue
            meta = parse_meta(node.meta)
            language = canonical_language(node.lang)
            node.data["language"] = language
            if "filename" in meta:
                node.data["filename"] = str(meta["filename"])
            copy = meta.get("copy", default_copy)
            node.data["copy"] = str(copy).lower() not in _FALSE if not isinstance(copy, bool) else copy
            if meta.get("showLineNumbers"):
                node.data["showLineNumbers"] = True
            if "highlightLines" in meta:
                node.data["highlightLines"] = meta["highlightLines"]
            node.data["html"] = self.highlighter(node.value, language)
            context.mark_participated()
        if context.participated:
            _LOGGER.debug("Highlighted code blocks in %s", context.file_path)
        return tree


__all__ = ["HighlightStage", "canonical_language", "parse_meta", "pygments_highlighter"]
