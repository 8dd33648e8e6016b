"""Core data models shared across pagemill components."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Optional, Tuple

from .runtime import load_module

FORMAT_MARKDOWN = "md"
FORMAT_RICH = "mdx"

MODE_FULL = "full"
MODE_METADATA = "metadata"


@dataclass(frozen=True)
class SourceFile:
    """A document read from disk; immutable once read."""

    path: Path
    format: str
    locale: str
    content: bytes

    @cached_property
    def fingerprint(self) -> str:
        return hashlib.sha256(self.content).hexdigest()

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    @classmethod
    def from_text(
        cls, text: str, *, path: str | Path = "<memory>.mdx", locale: str = "", format: str | None = None
    ) -> "SourceFile":
        path = Path(path)
        return cls(
            path=path,
            format=format or detect_format(path),
            locale=locale,
            content=text.encode("utf-8"),
        )


def detect_format(path: Path, forced: str = "detect") -> str:
    """Return ``mdx`` for the rich dialect and ``md`` for plain markdown."""
    if forced in {FORMAT_MARKDOWN, FORMAT_RICH}:
        return forced
    return FORMAT_RICH if path.suffix.lower() == ".mdx" else FORMAT_MARKDOWN


@dataclass(frozen=True)
class Heading:
    """A table-of-contents entry."""

    depth: int
    value: str
    id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"depth": self.depth, "value": self.value, "id": self.id}


@dataclass(frozen=True)
class ReadingTime:
    """Estimated reading time of a document body."""

    text: str
    minutes: float
    time: int
    words: int

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "minutes": self.minutes, "time": self.time, "words": self.words}


_READING_TIME_KEYS = frozenset({"text", "minutes", "time", "words"})


@dataclass(frozen=True)
class Metadata:
    """Descriptive metadata of a compiled document."""

    title: str
    file_path: str
    description: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[int] = None
    reading_time: Optional[ReadingTime] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title}
        if self.description is not None:
            data["description"] = self.description
        data.update(self.extra)
        data["file_path"] = self.file_path
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        if self.reading_time is not None:
            data["reading_time"] = self.reading_time.to_dict()
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Metadata":
        data = dict(payload)
        title = str(data.pop("title", ""))
        file_path = str(data.pop("file_path", ""))
        description = data.pop("description", None)
        timestamp = data.get("timestamp")
        if isinstance(timestamp, int) and not isinstance(timestamp, bool):
            del data["timestamp"]
        else:
            timestamp = None
        reading = data.get("reading_time")
        reading_time = None
        if isinstance(reading, dict) and set(reading) == _READING_TIME_KEYS:
            del data["reading_time"]
            reading_time = ReadingTime(**reading)
        return cls(
            title=title,
            file_path=file_path,
            description=description,
            extra=data,
            timestamp=timestamp,
            reading_time=reading_time,
        )


@dataclass(frozen=True)
class CompiledModule:
    """Output of the document pipeline for one source file."""

    mode: str
    code: str
    metadata: Metadata
    toc: Tuple[Heading, ...] = ()

    @cached_property
    def module(self) -> ModuleType:
        return load_module(self.code, name=_module_name(self.metadata.file_path))

    @property
    def render(self) -> Optional[Callable[..., Any]]:
        """The executable render entry point; ``None`` for metadata-only output."""
        if self.mode != MODE_FULL:
            return None
        return self.module.default

    def as_page(self) -> Dict[str, Any]:
        """Return the `{default, toc, metadata}` mapping handed to the rendering host."""
        return {
            "default": self.render,
            "toc": [heading.to_dict() for heading in self.toc],
            "metadata": self.metadata.to_dict(),
        }


def _module_name(file_path: str) -> str:
    stem = Path(file_path).with_suffix("").as_posix().strip("/") or "page"
    safe = "".join(char if char.isalnum() else "_" for char in stem)
    return f"pagemill_page_{safe}"


__all__ = [
    "CompiledModule",
    "FORMAT_MARKDOWN",
    "FORMAT_RICH",
    "Heading",
    "MODE_FULL",
    "MODE_METADATA",
    "Metadata",
    "ReadingTime",
    "SourceFile",
    "detect_format",
]
