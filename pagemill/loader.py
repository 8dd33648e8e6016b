"""Page-load interface for rendering hosts and the module loaders behind it."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Protocol, Sequence

from .compiler.cache import CompileCache
from .compiler.pipeline import DocumentCompiler
from .config import METADATA_ONLY_QUERY
from .errors import NotFoundError, PageMillError
from .logging import get_logger
from .models import MODE_FULL, MODE_METADATA, CompiledModule, Heading, Metadata
from .page_map.routes import RouteRegistry
from .runtime import load_module
from .scanner import SourceTreeScanner

DEFAULT_LOCALE_DIR = "_default"


def locale_dir(locale: str) -> str:
    return locale or DEFAULT_LOCALE_DIR


class ModuleLoader(Protocol):
    """Loads the compiled module of a document path within a locale."""

    def load(self, path: str, locale: str = "", *, mode: str = MODE_FULL) -> CompiledModule:
        ...


class CompilingModuleLoader:
    """Compiles documents on first request and serves later requests from the cache."""

    def __init__(
        self,
        compiler: DocumentCompiler,
        scanner: SourceTreeScanner,
        content_root: Path,
        *,
        cache: CompileCache | None = None,
        timestamps: bool = False,
    ) -> None:
        self.compiler = compiler
        self.scanner = scanner
        self.content_root = Path(content_root)
        self.timestamps = timestamps
        self.cache = cache if cache is not None else CompileCache()
        self.logger = get_logger("loader")

    def locale_root(self, locale: str = "") -> Path:
        return self.content_root / locale if locale else self.content_root

    def load(self, path: str, locale: str = "", *, mode: str = MODE_FULL) -> CompiledModule:
        source_path = self.locale_root(locale) / path
        if not source_path.is_file():
            raise NotFoundError(path, locale)
        source = self.scanner.read_source(source_path, locale)
        signature = self.compiler.signature
        cached = self.cache.get(
            path, fingerprint=source.fingerprint, signature=signature, locale=locale, mode=mode
        )
        if cached is not None:
            self.logger.debug("Cache hit for %s (%s, %s)", path, locale or "<default>", mode)
            return cached

        timestamp = int(source_path.stat().st_mtime * 1000) if self.timestamps else None
        if mode == MODE_METADATA:
            module = self.compiler.compile_metadata(source, file_path=path, timestamp=timestamp)
        else:
            module = self.compiler.compile(source, file_path=path, timestamp=timestamp)
        self.cache.store(path, module, fingerprint=source.fingerprint, signature=signature, locale=locale)
        return module

    def read_metadata(self, source_path: Path, locale: str = "") -> Dict[str, Any]:
        """Metadata reader handed to the page-map builder (absolute source paths)."""
        rel = Path(source_path).resolve().relative_to(self.locale_root(locale).resolve()).as_posix()
        return self.load(rel, locale, mode=MODE_METADATA).metadata.to_dict()

    def invalidate(self, path: str, locale: str | None = None) -> int:
        return self.cache.invalidate(path, locale)


class ArtifactModuleLoader:
    """Loads page modules written by a static build."""

    def __init__(self, output_root: Path) -> None:
        self.output_root = Path(output_root)

    def load(self, path: str, locale: str = "", *, mode: str = MODE_FULL) -> CompiledModule:
        module_file = self.output_root / "pages" / locale_dir(locale) / Path(path).with_suffix(".py")
        if not module_file.is_file():
            raise NotFoundError(path, locale)
        code = module_file.read_text(encoding="utf-8")
        module = load_module(code, name=_artifact_module_name(locale, path))
        toc = tuple(Heading(**item) for item in getattr(module, "toc", []))
        return CompiledModule(
            mode=mode,
            code=code,
            metadata=Metadata.from_dict(dict(module.metadata)),
            toc=toc if mode == MODE_FULL else (),
        )


class Pages:
    """What a rendering host calls to resolve and load pages."""

    def __init__(self, registry: RouteRegistry, loader: ModuleLoader) -> None:
        self.registry = registry
        self.loader = loader
        self.logger = get_logger("pages")

    def import_page(self, path_segments: Sequence[str] = (), locale: str = "") -> Dict[str, Any]:
        """Return `{default, toc, metadata}` for a route given as path segments."""
        return self._load(path_segments, locale, MODE_FULL).as_page()

    def import_metadata(self, path_segments: Sequence[str] = (), locale: str = "") -> Dict[str, Any]:
        return self._load(path_segments, locale, MODE_METADATA).metadata.to_dict()

    def load_request(self, path_with_query: str, locale: str = "") -> Dict[str, Any]:
        """Load `route` or `route?metadata`; the latter never runs the full pipeline."""
        route, marker, query = path_with_query.partition("?")
        segments = [segment for segment in route.split("/") if segment]
        if marker and f"?{query}" == METADATA_ONLY_QUERY:
            return {"metadata": self.import_metadata(segments, locale)}
        return self.import_page(segments, locale)

    def generate_static_params_for(
        self, segment_key: str, locale_key: str = "lang"
    ) -> Callable[[], List[Dict[str, Any]]]:
        """Return a callable enumerating every route of every locale as path params."""

        def _generate() -> List[Dict[str, Any]]:
            params: List[Dict[str, Any]] = []
            for locale in self.registry.locales:
                for route in self.registry.route_table(locale):
                    entry: Dict[str, Any] = {locale_key: locale} if locale else {}
                    entry[segment_key] = route.split("/") if route else []
                    params.append(entry)
            return params

        return _generate

    def _load(self, path_segments: Sequence[str], locale: str, mode: str) -> CompiledModule:
        route = "/".join(path_segments)
        path = self.registry.lookup(route, locale)
        try:
            return self.loader.load(path, locale, mode=mode)
        except PageMillError:
            raise
        except Exception:
            self.logger.exception("Error while loading %s (%s)", route or "/", locale or "<default>")
            raise


def _artifact_module_name(locale: str, path: str) -> str:
    stem = Path(path).with_suffix("").as_posix()
    safe = "".join(char if char.isalnum() else "_" for char in f"{locale_dir(locale)}_{stem}")
    return f"pagemill_artifact_{safe}"


__all__ = [
    "ArtifactModuleLoader",
    "CompilingModuleLoader",
    "DEFAULT_LOCALE_DIR",
    "ModuleLoader",
    "Pages",
    "locale_dir",
]
