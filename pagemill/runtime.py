"""Runtime helpers imported by generated page modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .errors import MissingComponentError

FRAGMENT = "Fragment"


@dataclass(frozen=True)
class Element:
    """A node of the render tree produced by a compiled page."""

    type: str
    props: Dict[str, Any] = field(default_factory=dict)
    children: Tuple[Any, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "props": {key: _serialise(value) for key, value in self.props.items()},
            "children": [_serialise(child) for child in self.children],
        }


class _FragmentMarker:
    def __repr__(self) -> str:
        return "Fragment"


Fragment = _FragmentMarker()


def h(type_: Any, props: Optional[Mapping[str, Any]] = None, *children: Any) -> Any:
    """Create an element, calling component callables with their props."""
    flat = tuple(_flatten(children))
    if type_ is Fragment:
        return Element(FRAGMENT, {}, flat)
    if callable(type_):
        return type_(**dict(props or {}), children=flat)
    return Element(str(type_), dict(props or {}), flat)


def resolve_component(
    components: Optional[Mapping[str, Any]], scope: Mapping[str, Any]
) -> Callable[[str], Any]:
    """Return a resolver mapping a tag name to a component or intrinsic tag."""
    overrides = dict(components or {})

    def _resolve(name: str) -> Any:
        if name in overrides:
            return overrides[name]
        head, _, rest = name.partition(".")
        if not head[:1].isupper():
            return name
        target = overrides.get(head, scope.get(head))
        if target is None:
            raise MissingComponentError(name)
        for attribute in filter(None, rest.split(".")):
            target = getattr(target, attribute, None)
            if target is None:
                raise MissingComponentError(name)
        return target

    return _resolve


def load_module(code: str, *, name: str = "pagemill_page", scope: Optional[Mapping[str, Any]] = None) -> ModuleType:
    """Execute generated page code into a fresh module object."""
    module = ModuleType(name)
    module.__dict__["__file__"] = f"<{name}>"
    if scope:
        module.__dict__.update(scope)
    exec(compile(code, f"<{name}>", "exec"), module.__dict__)
    return module


def evaluate(
    code: str,
    components: Optional[Mapping[str, Any]] = None,
    scope: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Run remote-content page code and return its rendered tree."""
    module = load_module(code, name="pagemill_remote", scope=scope)
    return module.default(components=components)


def text_content(node: Any) -> str:
    """Return the concatenated text of a rendered tree."""
    if node is None:
        return ""
    if isinstance(node, Element):
        return "".join(text_content(child) for child in node.children)
    if isinstance(node, (list, tuple)):
        return "".join(text_content(child) for child in node)
    return str(node)


def _flatten(children: Iterable[Any]) -> Iterable[Any]:
    for child in children:
        if child is None or child is False:
            continue
        if isinstance(child, (list, tuple)):
            yield from _flatten(child)
        else:
            yield child


def _serialise(value: Any) -> Any:
    if isinstance(value, Element):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialise(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _serialise(item) for key, item in value.items()}
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return repr(value)


__all__ = [
    "Element",
    "FRAGMENT",
    "Fragment",
    "evaluate",
    "h",
    "load_module",
    "resolve_component",
    "text_content",
]
