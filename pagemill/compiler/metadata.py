"""Metadata assignment: title resolution and reading-time estimates."""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Any, Dict, Optional

from ..models import Metadata, ReadingTime
from ..page_map.meta import prettify_name
from .syntax import CODE, HEADING, INLINE_CODE, TEXT, Node, text_of, walk

WORDS_PER_MINUTE = 200

_WORD_RE = re.compile(r"\w+(?:['’]\w+)*", re.UNICODE)


def first_heading_text(tree: Node) -> Optional[str]:
    for node, _ in walk(tree):
        if node.type == HEADING and node.depth == 1:
            text = text_of(node).strip()
            if text:
                return text
    return None


def resolve_title(declared: Dict[str, Any], tree: Node, file_path: str) -> str:
    title = declared.get("title")
    if isinstance(title, str) and title.strip():
        return title
    if title is not None and not isinstance(title, str):
        return str(title)
    heading = first_heading_text(tree)
    if heading:
        return heading
    return prettify_name(Path(file_path).stem)


def estimate_reading_time(tree: Node) -> ReadingTime:
    parts = []
    for node, _ in walk(tree):
        if node.type in {TEXT, INLINE_CODE, CODE}:
            parts.append(node.value)
    words = len(_WORD_RE.findall(" ".join(parts)))
    minutes = round(words / WORDS_PER_MINUTE, 2)
    return ReadingTime(
        text=f"{max(1, math.ceil(minutes))} min read",
        minutes=minutes,
        time=round(words / WORDS_PER_MINUTE * 60_000),
        words=words,
    )


def assign_metadata(
    declared: Dict[str, Any],
    tree: Node,
    *,
    file_path: str,
    timestamp: Optional[int] = None,
    reading_time: bool = False,
) -> Metadata:
    """Merge declared keys with derived values into a `Metadata` record."""
    extra = {key: value for key, value in declared.items() if key not in {"title", "description", "file_path"}}
    description = declared.get("description")
    return Metadata(
        title=resolve_title(declared, tree, file_path),
        file_path=file_path,
        description=str(description) if description is not None else None,
        extra=extra,
        timestamp=timestamp,
        reading_time=estimate_reading_time(tree) if reading_time else None,
    )


__all__ = [
    "WORDS_PER_MINUTE",
    "assign_metadata",
    "estimate_reading_time",
    "first_heading_text",
    "resolve_title",
]
