"""Generated build artifacts: per-locale page maps and compiled page modules."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, Mapping, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from .compiler.codegen import literal
from .errors import NotFoundError
from .loader import locale_dir
from .logging import get_logger
from .models import CompiledModule
from .page_map.nodes import Folder, page_map_from_list, page_map_to_list
from .page_map.routes import RouteRegistry, RouteTable
from .runtime import load_module

PAGE_MAP_TEMPLATE = "page-map/{locale}.py"
PAGES_DIR = "pages"

_TEMPLATES_DIR = Path(__file__).parent / "compiler" / "templates"


def page_map_path(output_root: Path, locale: str = "") -> Path:
    return Path(output_root) / PAGE_MAP_TEMPLATE.format(locale=locale_dir(locale))


def page_module_path(output_root: Path, path: str, locale: str = "") -> Path:
    return Path(output_root) / PAGES_DIR / locale_dir(locale) / Path(path).with_suffix(".py")


class ArtifactWriter:
    """Writes a complete build into `output_root`, replacing the previous one in one swap."""

    def __init__(self, output_root: Path) -> None:
        self.output_root = Path(output_root)
        self.logger = get_logger("artifacts")
        self._env = Environment(
            loader=FileSystemLoader(str(_TEMPLATES_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def render_page_map(self, locale: str, root: Folder, table: RouteTable) -> str:
        template = self._env.get_template("page_map.py.j2")
        return template.render(
            locale=locale,
            root_route=repr(root.route),
            page_map=literal(page_map_to_list(root)),
            routes=literal(table.to_dict()),
        )

    def publish(
        self,
        page_maps: Mapping[str, Folder],
        tables: Mapping[str, RouteTable],
        modules: Mapping[Tuple[str, str], CompiledModule],
    ) -> Sequence[Path]:
        """Stage every artifact, then swap the staging directory into place."""
        staging = self.output_root.with_name(f"{self.output_root.name}.staging")
        if staging.exists():
            shutil.rmtree(staging)
        written = []
        for locale, root in page_maps.items():
            target = page_map_path(staging, locale)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.render_page_map(locale, root, tables[locale]), encoding="utf-8")
            written.append(page_map_path(self.output_root, locale))
        for (locale, path), module in sorted(modules.items()):
            target = page_module_path(staging, path, locale)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(module.code, encoding="utf-8")
            written.append(page_module_path(self.output_root, path, locale))

        previous = self.output_root.with_name(f"{self.output_root.name}.previous")
        if previous.exists():
            shutil.rmtree(previous)
        if self.output_root.exists():
            self.output_root.rename(previous)
        staging.rename(self.output_root)
        if previous.exists():
            shutil.rmtree(previous)
        self.logger.info("Wrote %d artifacts to %s", len(written), self.output_root)
        return written


def read_page_map(output_root: Path, locale: str = "") -> Tuple[Folder, Dict[str, str]]:
    """Load a `page-map/{locale}.py` artifact into a folder tree and its route mapping."""
    artifact = page_map_path(output_root, locale)
    if not artifact.is_file():
        raise NotFoundError("", locale)
    module = load_module(artifact.read_text(encoding="utf-8"), name=f"pagemill_page_map_{locale_dir(locale)}")
    root = page_map_from_list(module.page_map, route=getattr(module, "root_route", "/"))
    return root, dict(module.route_to_filepath)


def load_registry(output_root: Path, locales: Sequence[str] = ("",)) -> RouteRegistry:
    registry = RouteRegistry(locales)
    trees = {locale: read_page_map(output_root, locale)[0] for locale in registry.locales}
    registry.publish(trees)
    return registry


__all__ = [
    "ArtifactWriter",
    "PAGE_MAP_TEMPLATE",
    "load_registry",
    "page_map_path",
    "page_module_path",
    "read_page_map",
]
