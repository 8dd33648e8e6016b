"""Helper utilities for constructing temporary content trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from pagemill.config import PageMillConfig, load_config
from pagemill.scanner import ScanResult, SourceTreeScanner


class ContentBuilder:
    """Utility for writing documents into a throwaway project and rescanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "site"
        self.content = self.root / "content"
        self.content.mkdir(parents=True)
        self._scanner = SourceTreeScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries under the content root."""
        for relative, content in files.items():
            path = self.content / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def configure(self, text: str = "") -> PageMillConfig:
        """Write `.pagemill.yml` and return the loaded configuration."""
        (self.root / ".pagemill.yml").write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return load_config(self.root)

    def scan(self, locales: tuple[str, ...] = ()) -> ScanResult:
        """Return a fresh scan of the content root."""
        return self._scanner.scan(self.content, locales)


__all__ = ["ContentBuilder"]
