"""Ordering file (`_meta`) loading and normalisation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from ..logging import get_logger

_LOGGER = get_logger("page_map.meta")

_KNOWN_KEYS = {"title", "rank", "hidden", "items", "display", "type", "href", "theme"}


def load_ordering_file(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read and normalise an ordering file; malformed files yield an empty mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        _LOGGER.warning("Unable to read ordering file %s: %s", path, exc)
        return {}
    if not text.strip():
        return {}
    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        _LOGGER.warning("Ignoring malformed ordering file %s: %s", path, exc)
        return {}
    if not isinstance(raw, dict):
        _LOGGER.warning("Ignoring ordering file %s: expected a mapping at the root", path)
        return {}
    return normalize_entries(raw, source=str(path))


def normalize_entries(raw: Mapping[Any, Any], *, source: str = "<inline>") -> Dict[str, Dict[str, Any]]:
    """Normalise `name -> title | override` into `name -> override` dictionaries."""
    entries: Dict[str, Dict[str, Any]] = {}
    for key, value in raw.items():
        name = str(key)
        if isinstance(value, str):
            entries[name] = {"title": value}
            continue
        if not isinstance(value, dict):
            _LOGGER.warning("Ignoring ordering entry '%s' in %s: unsupported value %r", name, source, value)
            entries[name] = {}
            continue
        entry: Dict[str, Any] = {}
        for field_name, field_value in value.items():
            if field_name == "rank":
                if isinstance(field_value, (int, float)) and not isinstance(field_value, bool):
                    entry["rank"] = field_value
                else:
                    _LOGGER.warning("Ignoring non-numeric rank for '%s' in %s", name, source)
            elif field_name == "hidden":
                entry["hidden"] = bool(field_value)
            elif field_name == "title":
                entry["title"] = str(field_value)
            elif field_name == "items":
                if isinstance(field_value, dict):
                    entry["items"] = normalize_entries(field_value, source=f"{source}#{name}")
                else:
                    _LOGGER.warning("Ignoring non-mapping items for '%s' in %s", name, source)
            else:
                if field_name not in _KNOWN_KEYS:
                    _LOGGER.debug("Passing through custom key '%s' for '%s'", field_name, name)
                entry[str(field_name)] = field_value
        entries[name] = entry
    return entries


def prettify_name(name: str) -> str:
    """Derive a display title from a file or folder name."""
    words = name.replace("_", " ").replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words) or name


__all__ = ["load_ordering_file", "normalize_entries", "prettify_name"]
