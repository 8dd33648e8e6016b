"""Interface-level components referenced by generated modules.

The visual component library lives in the rendering host. These factories only
describe the elements the math stage inserts, so compiled modules load and
produce a tree the host can map onto its own implementations.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from .runtime import Element


def MathJax(*, children: Sequence[Any] = (), inline: bool = False) -> Element:
    props = {"inline": True} if inline else {}
    return Element("MathJax", props, tuple(children))


def MathJaxContext(
    *,
    children: Sequence[Any] = (),
    src: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None,
) -> Element:
    props: Dict[str, Any] = {}
    if src:
        props["src"] = src
    if config:
        props["config"] = config
    return Element("MathJaxContext", props, tuple(children))


__all__ = ["MathJax", "MathJaxContext"]
