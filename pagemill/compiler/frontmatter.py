"""Front matter extraction for document sources."""

from __future__ import annotations

import ast
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

import yaml

from ..errors import CompileError

_FENCE = "---"
_CLOSERS = {"---", "..."}


@dataclass
class FrontMatter:
    """Parsed YAML header plus the remaining document body."""

    data: Dict[str, Any] = field(default_factory=dict)
    raw: Optional[str] = None
    body: str = ""
    body_offset: int = 0


def split_front_matter(text: str) -> FrontMatter:
    """Split a leading `---` fenced YAML block from `text`.

    `body_offset` is the number of lines consumed by the block, so parser line
    numbers stay relative to the whole file.
    """
    if text.startswith("﻿"):
        text = text[1:]
    lines = text.split("\n")
    if not lines or lines[0].rstrip() != _FENCE:
        return FrontMatter(body=text)

    for index in range(1, len(lines)):
        if lines[index].rstrip() in _CLOSERS:
            raw = "\n".join(lines[1:index])
            data = parse_front_matter(raw, line_offset=1)
            return FrontMatter(
                data=data,
                raw=raw,
                body="\n".join(lines[index + 1 :]),
                body_offset=index + 1,
            )
    raise CompileError("Unclosed front matter block", line=1, column=1)


def parse_front_matter(raw: str, *, line_offset: int = 0) -> Dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        loaded = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 1 + line_offset if mark is not None else line_offset + 1
        column = mark.column + 1 if mark is not None else None
        problem = getattr(exc, "problem", None) or str(exc)
        raise CompileError(f"Malformed front matter: {problem}", line=line, column=column) from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise CompileError(
            "Front matter must be a mapping of keys to values", line=line_offset + 1, column=1
        )
    return {str(key): _plain(value) for key, value in loaded.items()}


def _plain(value: Any) -> Any:
    """Coerce YAML scalars to values whose `repr` is valid Python literal syntax."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_plain(item) for item in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


def exported_metadata(exports: Dict[str, str], *, line: int) -> Optional[Dict[str, Any]]:
    """Evaluate an `export const metadata = {...}` literal, if declared."""
    expression = exports.get("metadata")
    if expression is None:
        return None
    try:
        value = ast.literal_eval(expression)
    except (ValueError, SyntaxError) as exc:
        raise CompileError(
            "Exported metadata must be a literal mapping", line=line, column=1
        ) from exc
    if not isinstance(value, dict):
        raise CompileError("Exported metadata must be a literal mapping", line=line, column=1)
    return {str(key): _plain(item) for key, item in value.items()}


__all__ = ["FrontMatter", "exported_metadata", "parse_front_matter", "split_front_matter"]
