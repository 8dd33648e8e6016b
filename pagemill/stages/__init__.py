"""Enrichment stage implementations and discovery utilities."""

from __future__ import annotations

from importlib import import_module, metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import Stage, StageContext, stage_signature
from .headings import HeadingsStage
from .highlight import HighlightStage
from .math import MathStage

ENTRY_POINT_GROUP = "pagemill.stages"

# Fixed declared order; plugin stages always run after these.
_BUILTIN_FACTORIES: dict[str, Callable[[], Stage]] = {
    "headings": HeadingsStage,
    "math": MathStage,
    "highlight": HighlightStage,
}

BUILTIN_STAGES = tuple(_BUILTIN_FACTORIES)


def discover_stages(extra: Sequence[str] | None = None) -> List[Stage]:
    """Return plugin stages from the entry-point group plus `extra` references.

    `extra` items are entry-point names or `module:attribute` references (as
    listed under `stages` in configuration).
    """
    stages: List[Stage] = []
    seen: Set[str] = set(BUILTIN_STAGES)
    requested = list(extra or [])

    def _add(name: str, obj: object) -> None:
        key = name.lower()
        if key in seen:
            return
        stages.append(_coerce_stage(obj, name))
        seen.add(key)

    available = {entry.name: entry for entry in _iter_entry_points()}
    for name in sorted(available):
        try:
            loaded = available[name].load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load stage entry point '{name}': {exc}") from exc
        _add(name, loaded)

    missing: List[str] = []
    for reference in requested:
        if reference.lower() in seen:
            continue
        if ":" not in reference:
            missing.append(reference)
            continue
        module_name, _, attribute = reference.partition(":")
        try:
            target = getattr(import_module(module_name), attribute)
        except (ImportError, AttributeError) as exc:
            raise RuntimeError(f"Failed to load stage '{reference}': {exc}") from exc
        _add(reference, target)

    if missing:
        raise ValueError(f"Unknown stages requested: {', '.join(sorted(missing))}")
    return stages


def builtin_stages() -> List[Stage]:
    return [factory() for factory in _BUILTIN_FACTORIES.values()]


def _coerce_stage(obj: object, name: str) -> Stage:
    if isinstance(obj, Stage):
        return obj
    if isinstance(obj, type) and issubclass(obj, Stage):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Stage):
            return instance
    raise TypeError(f"Stage '{name}' must be a Stage subclass, instance or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=ENTRY_POINT_GROUP)


__all__ = [
    "BUILTIN_STAGES",
    "ENTRY_POINT_GROUP",
    "HeadingsStage",
    "HighlightStage",
    "MathStage",
    "Stage",
    "StageContext",
    "builtin_stages",
    "discover_stages",
    "stage_signature",
]
