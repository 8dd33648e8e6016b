"""Minimal JSDoc/TSDoc comment parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

_TAG_RE = re.compile(r"^@(\w+)\s*(.*)$")
_PARAM_RE = re.compile(r"^(?:\{[^}]*\}\s*)?\[?(?P<name>[\w$.]+)(?:=[^\]]*)?\]?\s*(?:-\s*)?(?P<text>.*)$", re.S)
_BACKTICK_TYPE_RE = re.compile(r"^`([^`]+)`$")


@dataclass
class DocComment:
    """Parsed body and block tags of one `/** ... */` comment."""

    description: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def resolved_description(self) -> Optional[str]:
        return self.description or self.tags.get("description") or None

    def type_override(self) -> Optional[str]:
        """Type text from a backtick-wrapped `@remarks` tag, if present."""
        remarks = self.tags.get("remarks", "").strip()
        match = _BACKTICK_TYPE_RE.match(remarks)
        return match.group(1) if match else None


def is_doc_comment(text: str) -> bool:
    return text.startswith("/**") and not text.startswith("/**/")


def parse_doc_comment(text: Optional[str]) -> DocComment:
    if not text or not is_doc_comment(text):
        return DocComment()
    lines = _clean_lines(text)

    body: List[str] = []
    blocks: List[tuple[str, List[str]]] = []
    in_fence = False
    for line in lines:
        if line.strip().startswith("```"):
            in_fence = not in_fence
        match = None if in_fence else _TAG_RE.match(line.strip())
        if match:
            blocks.append((match.group(1), [match.group(2)]))
        elif blocks:
            blocks[-1][1].append(line)
        else:
            body.append(line)

    comment = DocComment(description="\n".join(body).strip() or None)
    for tag, content in blocks:
        value = "\n".join(content).strip()
        if tag == "param":
            param = _PARAM_RE.match(value)
            if param:
                comment.params[param.group("name")] = param.group("text").strip()
            continue
        if tag == "return":
            tag = "returns"
        comment.tags[tag] = value
    return comment


def _clean_lines(text: str) -> List[str]:
    inner = text[3:-2] if text.endswith("*/") else text[3:]
    cleaned: List[str] = []
    for raw in inner.split("\n"):
        line = raw.strip()
        if line.startswith("*"):
            line = raw.lstrip()[1:]
            if line.startswith(" "):
                line = line[1:]
        else:
            line = raw.strip()
        cleaned.append(line.rstrip())
    while cleaned and not cleaned[0].strip():
        cleaned.pop(0)
    while cleaned and not cleaned[-1].strip():
        cleaned.pop()
    return cleaned


__all__ = ["DocComment", "is_doc_comment", "parse_doc_comment"]
