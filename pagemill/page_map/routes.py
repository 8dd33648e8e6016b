"""Route table compilation and the per-locale snapshot registry."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence
from urllib.parse import unquote

from ..errors import DuplicateRouteError, NotFoundError
from ..logging import get_logger
from .nodes import Folder, iter_documents

_LOGGER = get_logger("page_map.routes")


@dataclass(frozen=True)
class RouteTable:
    """Read-only route -> source path mapping for one locale."""

    locale: str
    routes: Mapping[str, str]

    def lookup(self, route: str) -> str:
        """Resolve a route given as a table key or in its percent-encoded form."""
        key = self._key(route)
        try:
            return self.routes[key]
        except KeyError:
            raise NotFoundError(key, self.locale) from None

    def __contains__(self, route: object) -> bool:
        return isinstance(route, str) and self._key(route) in self.routes

    def __iter__(self) -> Iterator[str]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.routes)

    def _key(self, route: str) -> str:
        key = route.strip("/")
        return key if key in self.routes else normalize_route(route)


def normalize_route(route: str) -> str:
    """Strip slashes and percent-decode once, matching table keys."""
    return unquote(route).strip("/")


def compile_route_table(root: Folder, locale: str = "") -> RouteTable:
    """Flatten a complete folder tree depth-first into a route table."""
    prefix = root.route.rstrip("/")
    routes: Dict[str, str] = {}
    for document in iter_documents(root):
        route = document.route
        if prefix and route.startswith(prefix):
            route = route[len(prefix):]
        key = route.strip("/")
        if key in routes:
            raise DuplicateRouteError(key, routes[key], document.path, locale)
        routes[key] = document.path
    _LOGGER.debug("Compiled %d routes for locale '%s'", len(routes), locale or "<default>")
    return RouteTable(locale=locale, routes=MappingProxyType(routes))


@dataclass(frozen=True)
class LocaleSnapshot:
    page_map: Folder
    routes: RouteTable


class RouteRegistry:
    """Owns the page map and route table of every locale.

    Snapshots are immutable and replaced wholesale, so readers never observe a
    partially updated tree.
    """

    def __init__(self, locales: Sequence[str] = ("",)) -> None:
        self._locales: List[str] = [locale for locale in locales] or [""]
        self._snapshots: Mapping[str, LocaleSnapshot] = MappingProxyType({})

    @property
    def locales(self) -> List[str]:
        return list(self._locales)

    def publish(self, trees: Mapping[str, Folder]) -> Dict[str, RouteTable]:
        """Compile route tables for complete trees and swap them in atomically."""
        snapshots = dict(self._snapshots)
        tables: Dict[str, RouteTable] = {}
        for locale, tree in trees.items():
            table = compile_route_table(tree, locale)
            tables[locale] = table
            snapshots[locale] = LocaleSnapshot(page_map=tree, routes=table)
        self._snapshots = MappingProxyType(snapshots)
        return tables

    def snapshot(self, locale: str = "") -> LocaleSnapshot:
        snapshot = self._snapshots.get(locale)
        if snapshot is None:
            raise NotFoundError("", locale)
        return snapshot

    def route_table(self, locale: str = "") -> RouteTable:
        return self.snapshot(locale).routes

    def page_map(self, locale: str = "") -> Folder:
        return self.snapshot(locale).page_map

    def lookup(self, route: str, locale: str = "") -> str:
        snapshot = self._snapshots.get(locale)
        if snapshot is None:
            raise NotFoundError(route, locale)
        return snapshot.routes.lookup(route)

    def get(self, route: str, locale: str = "") -> Optional[str]:
        try:
            return self.lookup(route, locale)
        except NotFoundError:
            return None


__all__ = [
    "LocaleSnapshot",
    "RouteRegistry",
    "RouteTable",
    "compile_route_table",
    "normalize_route",
]
