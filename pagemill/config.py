"""Configuration loading for pagemill (.pagemill.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".pagemill.yml"

METADATA_ONLY_QUERY = "?metadata"

_FORMATS = {"detect", "md", "mdx"}


@dataclass
class LatexConfig:
    """Math rendering hand-off settings."""

    enabled: bool = False
    renderer: str = "mathjax"
    src: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)

    def stage_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.src:
            options["src"] = self.src
        if self.config:
            options["config"] = self.config
        return options


@dataclass
class PageMillConfig:
    """Represents the settings defined in .pagemill.yml."""

    root: Path
    content_dir: Path = Path("content")
    output_dir: Path = Path(".pagemill")
    locales: List[str] = field(default_factory=list)
    default_locale: Optional[str] = None
    index_name: str = "index"
    meta_name: str = "_meta"
    content_base_path: str = "/"
    exclude_paths: List[str] = field(default_factory=list)
    format: str = "detect"
    latex: LatexConfig = field(default_factory=LatexConfig)
    code_highlight: bool = True
    default_show_copy_code: bool = False
    reading_time: bool = False
    stages: List[str] = field(default_factory=list)
    strict: bool = True

    @property
    def content_root(self) -> Path:
        return self.content_dir if self.content_dir.is_absolute() else self.root / self.content_dir

    @property
    def output_root(self) -> Path:
        return self.output_dir if self.output_dir.is_absolute() else self.root / self.output_dir

    @property
    def effective_locales(self) -> List[str]:
        """Declared locales, or the single implicit default locale ``""``."""
        return list(self.locales) if self.locales else [""]


def load_config(config_path: Path) -> PageMillConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return PageMillConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = PageMillConfig(root=root)

    content_dir = _as_str(data.get("content_dir"))
    if content_dir:
        config.content_dir = Path(content_dir)
    output_dir = _as_str(data.get("output_dir"))
    if output_dir:
        config.output_dir = Path(output_dir)

    config.locales = _as_str_list(data.get("locales"))
    config.default_locale = _as_str(data.get("default_locale"))
    if config.default_locale and config.locales and config.default_locale not in config.locales:
        raise ConfigError(
            f"default_locale '{config.default_locale}' is not one of the declared locales"
        )
    if config.default_locale is None and config.locales:
        config.default_locale = config.locales[0]

    config.index_name = _as_str(data.get("index_name")) or config.index_name
    config.meta_name = _as_str(data.get("meta_name")) or config.meta_name
    base_path = _as_str(data.get("content_base_path"))
    if base_path:
        config.content_base_path = "/" + base_path.strip("/")
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    doc_format = (_as_str(data.get("format")) or "detect").lower()
    if doc_format not in _FORMATS:
        raise ConfigError(f"format must be one of {sorted(_FORMATS)}, got '{doc_format}'")
    config.format = doc_format

    config.latex = _parse_latex(data.get("latex"))

    code_highlight = _as_bool(data.get("code_highlight"))
    if code_highlight is not None:
        config.code_highlight = code_highlight
    show_copy = _as_bool(data.get("default_show_copy_code"))
    if show_copy is not None:
        config.default_show_copy_code = show_copy
    reading_time = _as_bool(data.get("reading_time"))
    if reading_time is not None:
        config.reading_time = reading_time
    strict = _as_bool(data.get("strict"))
    if strict is not None:
        config.strict = strict

    config.stages = _as_str_list(data.get("stages"))
    return config


def _parse_latex(value: Any) -> LatexConfig:
    if value is None:
        return LatexConfig()
    flag = _as_bool(value)
    if flag is not None:
        return LatexConfig(enabled=flag)
    if not isinstance(value, dict):
        raise ConfigError("latex must be a boolean or a mapping")
    renderer = (_as_str(value.get("renderer")) or "mathjax").lower()
    if renderer != "mathjax":
        raise ConfigError(f"Unsupported latex renderer '{renderer}'; only 'mathjax' is handed off")
    options = _as_dict(value.get("options"))
    return LatexConfig(
        enabled=True,
        renderer=renderer,
        src=_as_str(options.get("src")),
        config=_as_dict(options.get("config")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "LatexConfig",
    "METADATA_ONLY_QUERY",
    "PageMillConfig",
    "load_config",
]
