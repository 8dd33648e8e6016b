"""Immutable page-map node types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class OrderingFile:
    """Normalized per-directory ordering data; occupies no route."""

    data: Dict[str, Dict[str, Any]]
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"data": self.data}


@dataclass(frozen=True)
class Document:
    """A single markdown document."""

    name: str
    route: str
    title: str
    path: str
    front_matter: Dict[str, Any] = field(default_factory=dict)
    hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "route": self.route,
            "title": self.title,
            "path": self.path,
            "front_matter": self.front_matter,
        }
        if self.hidden:
            data["hidden"] = True
        return data


@dataclass(frozen=True)
class Folder:
    """A directory and its ordered children."""

    name: str
    route: str
    title: str
    children: Tuple["PageMapNode", ...] = ()
    path: str = ""
    hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "route": self.route,
            "title": self.title,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }
        if self.hidden:
            data["hidden"] = True
        return data

    def named_children(self) -> Iterator[Union["Folder", Document]]:
        for child in self.children:
            if not isinstance(child, OrderingFile):
                yield child

    def ordering(self) -> Optional[OrderingFile]:
        for child in self.children:
            if isinstance(child, OrderingFile):
                return child
        return None


PageMapNode = Union[Folder, Document, OrderingFile]


def node_from_dict(payload: Mapping[str, Any]) -> PageMapNode:
    """Rebuild a node from its `to_dict` form."""
    if "data" in payload and "name" not in payload:
        return OrderingFile(data=dict(payload["data"]))
    if "children" in payload:
        return Folder(
            name=payload["name"],
            route=payload["route"],
            title=payload.get("title", payload["name"]),
            children=tuple(node_from_dict(child) for child in payload["children"]),
            path=payload.get("path", ""),
            hidden=bool(payload.get("hidden", False)),
        )
    return Document(
        name=payload["name"],
        route=payload["route"],
        title=payload.get("title", payload["name"]),
        path=payload["path"],
        front_matter=dict(payload.get("front_matter") or {}),
        hidden=bool(payload.get("hidden", False)),
    )


def page_map_to_list(root: Folder) -> List[Dict[str, Any]]:
    """Serialise a root folder's children, the shape exposed as `page_map`."""
    return [child.to_dict() for child in root.children]


def page_map_from_list(items: Sequence[Mapping[str, Any]], *, route: str = "/") -> Folder:
    return Folder(
        name="",
        route=route,
        title="",
        children=tuple(node_from_dict(item) for item in items),
    )


def iter_documents(node: PageMapNode) -> Iterator[Document]:
    """Yield documents depth-first in sibling order."""
    if isinstance(node, Document):
        yield node
    elif isinstance(node, Folder):
        for child in node.children:
            yield from iter_documents(child)


__all__ = [
    "Document",
    "Folder",
    "OrderingFile",
    "PageMapNode",
    "iter_documents",
    "node_from_dict",
    "page_map_from_list",
    "page_map_to_list",
]
