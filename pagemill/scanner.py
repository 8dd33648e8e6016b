"""Content tree scanning utilities."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ScanError
from .logging import get_logger
from .models import SourceFile, detect_format

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    ".pagemill",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

DOCUMENT_SUFFIXES = (".md", ".mdx")
ORDERING_SUFFIXES = (".yml", ".yaml", ".json")


@dataclass
class IgnoreRule:
    """Represents an exclusion rule parsed from `exclude_paths`."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rules(patterns: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for raw in patterns:
        pattern = raw.strip()
        if not pattern:
            continue
        directory_only = pattern.endswith("/")
        if directory_only:
            pattern = pattern[:-1]
        anchored = pattern.startswith("/")
        if anchored:
            pattern = pattern[1:]
        rules.append(
            IgnoreRule(
                pattern=pattern,
                directory_only=directory_only,
                anchored=anchored,
                has_slash="/" in pattern,
            )
        )
    return rules


@dataclass
class ScannedDirectory:
    """One directory of the content tree as seen on disk."""

    path: Path
    name: str
    rel_path: str
    directories: List["ScannedDirectory"] = field(default_factory=list)
    documents: List[Path] = field(default_factory=list)
    ordering_file: Optional[Path] = None

    def entries(self) -> List[tuple[str, object]]:
        """Return `(entry_name, item)` pairs in enumeration order."""
        items: List[tuple[str, object]] = [(d.path.name, d) for d in self.directories]
        items.extend((p.name, p) for p in self.documents)
        items.sort(key=lambda pair: pair[0])
        return items

    def find(self, rel_path: str) -> Optional["ScannedDirectory"]:
        if rel_path.strip("/") == self.rel_path:
            return self
        for directory in self.directories:
            found = directory.find(rel_path.strip("/"))
            if found is not None:
                return found
        return None


@dataclass
class ScanResult:
    """Scanned content root: one directory tree per locale."""

    root: Path
    locales: Dict[str, ScannedDirectory]


class SourceTreeScanner:
    """Walks a content root and enumerates documents and ordering files."""

    def __init__(
        self,
        *,
        meta_name: str = "_meta",
        exclude_paths: Sequence[str] = (),
        forced_format: str = "detect",
    ) -> None:
        self.meta_name = meta_name
        self._rules = build_ignore_rules(exclude_paths)
        self.forced_format = forced_format
        self.logger = get_logger("scanner")

    def scan(self, content_root: str | Path, locales: Sequence[str] = ()) -> ScanResult:
        """Return every directory, document and ordering file under the root."""
        root = Path(content_root).expanduser().resolve()
        if not root.exists():
            raise ScanError(f"Content root not found: {content_root}")
        if not root.is_dir():
            raise ScanError(f"Content root is not a directory: {content_root}")

        declared = [locale for locale in locales if locale] or [""]
        missing = [locale for locale in declared if locale and not (root / locale).is_dir()]
        if missing:
            raise ScanError(
                f"Missing locale folder(s) under {root}: {', '.join(sorted(missing))}"
            )

        result: Dict[str, ScannedDirectory] = {}
        for locale in declared:
            locale_root = root / locale if locale else root
            result[locale] = self.scan_directory(locale_root, locale_root)
            self.logger.debug(
                "Scanned locale '%s' at %s", locale or "<default>", locale_root
            )
        return ScanResult(root=root, locales=result)

    def scan_directory(self, directory: Path, locale_root: Path) -> ScannedDirectory:
        """Scan one directory (and its descendants) relative to a locale root."""
        directory = directory.resolve()
        locale_root = locale_root.resolve()
        if not directory.is_dir():
            raise ScanError(f"Directory not found: {directory}")

        rel_root = directory.relative_to(locale_root).as_posix()
        rel_root = "" if rel_root == "." else rel_root
        top = ScannedDirectory(path=directory, name=directory.name, rel_path=rel_root)
        by_path: Dict[Path, ScannedDirectory] = {directory: top}

        for dirpath, dirnames, filenames in os.walk(directory):
            current_dir = Path(dirpath)
            current = by_path[current_dir]

            kept_dirs = []
            for name in sorted(dirnames):
                if name in _EXCLUDED_DIRS or name.startswith("."):
                    continue
                rel_path = f"{current.rel_path}/{name}" if current.rel_path else name
                if self._ignored(rel_path, True):
                    continue
                child = ScannedDirectory(path=current_dir / name, name=name, rel_path=rel_path)
                current.directories.append(child)
                by_path[child.path] = child
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                if filename in _EXCLUDED_FILES or filename.startswith("."):
                    continue
                rel_path = f"{current.rel_path}/{filename}" if current.rel_path else filename
                if self._ignored(rel_path, False):
                    continue
                path = current_dir / filename
                stem, suffix = os.path.splitext(filename)
                if stem == self.meta_name and suffix.lower() in ORDERING_SUFFIXES:
                    if current.ordering_file is not None:
                        self.logger.warning(
                            "Multiple ordering files in %s; using %s",
                            current.path,
                            current.ordering_file.name,
                        )
                        continue
                    current.ordering_file = path
                elif suffix.lower() in DOCUMENT_SUFFIXES:
                    current.documents.append(path)

        return top

    def read_source(self, path: str | Path, locale: str = "") -> SourceFile:
        """Read a document into an immutable `SourceFile`."""
        file_path = Path(path)
        return SourceFile(
            path=file_path,
            format=detect_format(file_path, self.forced_format),
            locale=locale,
            content=file_path.read_bytes(),
        )

    def _ignored(self, rel_path: str, is_dir: bool) -> bool:
        return any(rule.matches(rel_path, is_dir) for rule in self._rules)


__all__ = [
    "DOCUMENT_SUFFIXES",
    "IgnoreRule",
    "ScanResult",
    "ScannedDirectory",
    "SourceTreeScanner",
    "build_ignore_rules",
]
