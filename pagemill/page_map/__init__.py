"""Page-map construction and route resolution."""

from __future__ import annotations

from .builder import PageMapBuilder, find_subtree, join_route
from .meta import load_ordering_file, normalize_entries, prettify_name
from .nodes import (
    Document,
    Folder,
    OrderingFile,
    PageMapNode,
    iter_documents,
    page_map_from_list,
    page_map_to_list,
)
from .routes import RouteRegistry, RouteTable, compile_route_table, normalize_route

__all__ = [
    "Document",
    "Folder",
    "OrderingFile",
    "PageMapBuilder",
    "PageMapNode",
    "RouteRegistry",
    "RouteTable",
    "compile_route_table",
    "find_subtree",
    "iter_documents",
    "join_route",
    "load_ordering_file",
    "normalize_entries",
    "normalize_route",
    "page_map_from_list",
    "page_map_to_list",
    "prettify_name",
]
