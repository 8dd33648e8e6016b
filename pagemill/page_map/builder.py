"""Builds immutable page-map trees from scan results."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import unquote

from ..errors import CompileError, NotFoundError
from ..logging import get_logger
from ..scanner import ScannedDirectory, ScanResult, SourceTreeScanner
from .meta import load_ordering_file, prettify_name
from .nodes import Document, Folder, OrderingFile, PageMapNode

MetadataReader = Callable[[Path, str], Mapping[str, Any]]


def join_route(parent: str, segment: str) -> str:
    if not segment:
        return parent or "/"
    return f"{parent.rstrip('/')}/{segment}"


def locale_base_route(base_path: str, locale: str) -> str:
    base = "/" + base_path.strip("/") if base_path.strip("/") else ""
    return join_route(base or "/", locale) if locale else (base or "/")


class PageMapBuilder:
    """Turns scanned directories into a `Folder` tree with resolved routes."""

    def __init__(
        self,
        *,
        index_name: str = "index",
        base_path: str = "/",
        metadata_reader: Optional[MetadataReader] = None,
        strict: bool = True,
    ) -> None:
        self.index_name = index_name
        self.base_path = base_path
        self._metadata_reader = metadata_reader
        self.strict = strict
        self.logger = get_logger("page_map")

    def build(self, scan: ScanResult) -> Dict[str, Folder]:
        """Build one complete tree per locale."""
        return {
            locale: self.build_locale(directory, locale)
            for locale, directory in scan.locales.items()
        }

    def build_locale(self, directory: ScannedDirectory, locale: str = "") -> Folder:
        route = locale_base_route(self.base_path, locale)
        root = self._build_folder(
            directory,
            route=route,
            locale=locale,
            name=locale,
            title=locale,
            override=None,
        )
        self.logger.debug("Built page map for locale '%s' at %s", locale or "<default>", route)
        return root

    def rebuild_subtree(
        self,
        root: Folder,
        changed: str,
        scanner: SourceTreeScanner,
        locale_root: Path,
        locale: str = "",
    ) -> Folder:
        """Rescan the nearest existing directory of `changed` and splice it into `root`.

        Sibling order and routes outside the rebuilt subtree are preserved.
        """
        rel = PurePosixPath(changed.strip("/")) if changed.strip("/") else None
        while rel is not None:
            rel_str = rel.as_posix()
            if (locale_root / rel_str).is_dir() and _find_folder(root, rel_str) is not None:
                directory = scanner.scan_directory(locale_root / rel_str, locale_root)
                self.logger.debug("Splicing rebuilt subtree '%s'", rel_str)
                return self._splice(root, directory, locale)
            rel = rel.parent if rel.parent.as_posix() != "." else None

        self.logger.debug("Rebuilding page map for locale '%s' wholesale", locale or "<default>")
        directory = scanner.scan_directory(locale_root, locale_root)
        return self._build_folder(
            directory,
            route=root.route,
            locale=locale,
            name=root.name,
            title=root.title,
            override=None,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _build_folder(
        self,
        directory: ScannedDirectory,
        *,
        route: str,
        locale: str,
        name: str,
        title: str,
        override: Optional[Dict[str, Dict[str, Any]]],
        hidden: bool = False,
    ) -> Folder:
        ordering: Dict[str, Dict[str, Any]] = {}
        ordering_path: Optional[str] = None
        if directory.ordering_file is not None:
            ordering = load_ordering_file(directory.ordering_file)
            ordering_path = _rel(directory, directory.ordering_file.name)
            if override:
                self.logger.debug(
                    "Ordering file %s takes precedence over parent items", directory.ordering_file
                )
        elif override:
            ordering = override

        children: List[Tuple[Tuple[int, float, int], PageMapNode]] = []
        listed = list(ordering)
        seen: set[str] = set()
        for position, (entry_name, item) in enumerate(directory.entries()):
            if isinstance(item, ScannedDirectory):
                child_name = entry_name
                entry = dict(ordering.get(child_name, {}))
                child: PageMapNode = self._build_folder(
                    item,
                    route=self._child_route(route, child_name),
                    locale=locale,
                    name=child_name,
                    title=entry.get("title") or prettify_name(child_name),
                    override=entry.get("items"),
                    hidden=bool(entry.get("hidden", False)),
                )
            else:
                path = Path(str(item))
                child_name = path.stem
                entry = dict(ordering.get(child_name, {}))
                if "items" in entry:
                    self.logger.warning(
                        "Ordering entry '%s' in %s declares nested items but refers to a "
                        "document; ignoring the override",
                        child_name,
                        directory.ordering_file or directory.path,
                    )
                    entry = {}
                front_matter = self._read_front_matter(path, locale, child_name)
                child = Document(
                    name=child_name,
                    route=self._child_route(route, child_name),
                    title=entry.get("title") or str(front_matter.get("title") or prettify_name(child_name)),
                    path=_rel(directory, path.name),
                    front_matter=front_matter,
                    hidden=bool(entry.get("hidden", False)),
                )
            seen.add(child_name)
            children.append((_sort_key(child_name, entry, listed, position), child))

        for missing in (key for key in listed if key not in seen):
            self.logger.debug(
                "Ordering key '%s' in %s has no matching sibling", missing, directory.path
            )

        children.sort(key=lambda pair: pair[0])
        ordered: List[PageMapNode] = [node for _, node in children]
        if ordering:
            ordered.insert(0, OrderingFile(data=ordering, path=ordering_path))
        return Folder(
            name=name,
            route=route,
            title=title,
            children=tuple(ordered),
            path=directory.rel_path,
            hidden=hidden,
        )

    def _child_route(self, parent_route: str, name: str) -> str:
        if name == self.index_name:
            return parent_route
        return join_route(parent_route, unquote(name))

    def _read_front_matter(self, path: Path, locale: str, name: str) -> Dict[str, Any]:
        fallback = {"title": prettify_name(name)}
        if self._metadata_reader is None:
            return fallback
        try:
            metadata = dict(self._metadata_reader(path, locale))
        except CompileError as exc:
            if self.strict:
                raise
            self.logger.error("Failed to read metadata for %s: %s", path, exc)
            return fallback
        metadata.pop("file_path", None)
        metadata.setdefault("title", fallback["title"])
        return metadata

    def _splice(self, folder: Folder, directory: ScannedDirectory, locale: str) -> Folder:
        rebuilt: List[PageMapNode] = []
        for child in folder.children:
            if isinstance(child, Folder) and _is_within(directory.rel_path, child.path):
                if child.path == directory.rel_path:
                    parent_ordering = folder.ordering()
                    entry = parent_ordering.data.get(child.name, {}) if parent_ordering else {}
                    child = self._build_folder(
                        directory,
                        route=child.route,
                        locale=locale,
                        name=child.name,
                        title=child.title,
                        override=entry.get("items"),
                        hidden=child.hidden,
                    )
                else:
                    child = self._splice(child, directory, locale)
            rebuilt.append(child)
        return replace(folder, children=tuple(rebuilt))


def find_subtree(root: Folder, route: str = "/") -> Tuple[PageMapNode, ...]:
    """Return the children found under `route`, walking folders by name."""
    relative = route
    if root.route != "/" and route.startswith(root.route):
        relative = route[len(root.route):]
    children = root.children
    for segment in filter(None, relative.split("/")):
        folder = next(
            (
                item
                for item in children
                if isinstance(item, Folder) and unquote(item.name) == unquote(segment)
            ),
            None,
        )
        if folder is None:
            raise NotFoundError(route)
        children = folder.children
    return children


def _find_folder(root: Folder, rel_path: str) -> Optional[Folder]:
    if root.path == rel_path:
        return root
    for child in root.children:
        if isinstance(child, Folder) and _is_within(rel_path, child.path):
            found = _find_folder(child, rel_path)
            if found is not None:
                return found
    return None


def _is_within(rel_path: str, folder_path: str) -> bool:
    return bool(folder_path) and (rel_path == folder_path or rel_path.startswith(f"{folder_path}/"))


def _rel(directory: ScannedDirectory, filename: str) -> str:
    return f"{directory.rel_path}/{filename}" if directory.rel_path else filename


def _sort_key(
    name: str, entry: Mapping[str, Any], listed: List[str], position: int
) -> Tuple[int, float, int]:
    rank = entry.get("rank")
    if rank is not None:
        return (0, float(rank), position)
    if name in listed:
        return (1, float(listed.index(name)), position)
    return (2, 0.0, position)


__all__ = ["PageMapBuilder", "find_subtree", "join_route", "locale_base_route"]
