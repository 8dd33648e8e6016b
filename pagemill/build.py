"""Build orchestration for static builds and dynamic serving."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

from .artifacts import ArtifactWriter
from .compiler.cache import CompileCache
from .compiler.pipeline import CompilerOptions, DocumentCompiler
from .config import PageMillConfig
from .errors import CompileError, PageMillError
from .loader import CompilingModuleLoader, Pages
from .logging import get_logger
from .models import MODE_FULL, CompiledModule
from .page_map.builder import PageMapBuilder
from .page_map.nodes import Folder, iter_documents
from .page_map.routes import RouteRegistry, RouteTable, compile_route_table
from .scanner import ScanResult, SourceTreeScanner

DocumentKey = Tuple[str, str]


@dataclass
class BuildResult:
    """Outcome of a full build."""

    page_maps: Dict[str, Folder] = field(default_factory=dict)
    route_tables: Dict[str, RouteTable] = field(default_factory=dict)
    modules: Dict[DocumentKey, CompiledModule] = field(default_factory=dict)
    errors: Dict[DocumentKey, str] = field(default_factory=dict)
    written: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class Builder:
    """Coordinates scan -> page map -> route tables -> compilation."""

    def __init__(
        self,
        config: PageMillConfig,
        *,
        compiler: DocumentCompiler | None = None,
        cache: CompileCache | None = None,
        scanner: SourceTreeScanner | None = None,
    ) -> None:
        self.config = config
        self.logger = get_logger("build")
        self.scanner = scanner or SourceTreeScanner(
            meta_name=config.meta_name,
            exclude_paths=config.exclude_paths,
            forced_format=config.format,
        )
        self.compiler = compiler or DocumentCompiler(CompilerOptions.from_config(config))
        self.loader = CompilingModuleLoader(
            self.compiler, self.scanner, config.content_root, cache=cache
        )
        self.page_map_builder = PageMapBuilder(
            index_name=config.index_name,
            base_path=config.content_base_path,
            metadata_reader=self.loader.read_metadata,
            strict=config.strict,
        )
        self.registry = RouteRegistry(config.effective_locales)
        self.pages = Pages(self.registry, self.loader)

    @property
    def cache(self) -> CompileCache:
        return self.loader.cache

    # ------------------------------------------------------------------
    # Page maps

    def scan(self) -> ScanResult:
        self.logger.debug("Scanning %s", self.config.content_root)
        return self.scanner.scan(self.config.content_root, self.config.locales)

    def build_page_maps(self) -> Tuple[Dict[str, Folder], Dict[str, RouteTable]]:
        """Build every locale's tree and route table without publishing them."""
        trees = self.page_map_builder.build(self.scan())
        tables = {locale: compile_route_table(tree, locale) for locale, tree in trees.items()}
        return trees, tables

    def refresh(self) -> Dict[str, RouteTable]:
        """Rebuild and publish page maps for dynamic serving; compilation stays lazy."""
        trees, _ = self.build_page_maps()
        tables = self.registry.publish(trees)
        self.logger.info("Published routes for %d locale(s)", len(tables))
        return tables

    def rebuild(self, changed: Path, locale: str = "") -> RouteTable:
        """Incrementally rebuild after `changed` (a file or directory) was modified."""
        locale_root = self.loader.locale_root(locale)
        rel = Path(changed).resolve().relative_to(locale_root.resolve()).as_posix()
        self.loader.invalidate(rel, locale)
        directory = rel if (locale_root / rel).is_dir() else Path(rel).parent.as_posix()
        current = self.registry.page_map(locale)
        updated = self.page_map_builder.rebuild_subtree(
            current, "" if directory == "." else directory, self.scanner, locale_root, locale
        )
        return self.registry.publish({locale: updated})[locale]

    # ------------------------------------------------------------------
    # Full builds

    def build(self, *, write: bool = True) -> BuildResult:
        return asyncio.run(self.build_async(write=write))

    async def build_async(self, *, write: bool = True) -> BuildResult:
        """Compile every document concurrently and publish only if the whole build succeeds."""
        trees, tables = self.build_page_maps()
        result = BuildResult(page_maps=trees, route_tables=tables)

        jobs = document_keys(trees)
        loop = asyncio.get_running_loop()
        outcomes = await asyncio.gather(
            *(loop.run_in_executor(None, self._compile_one, locale, path) for locale, path in jobs),
            return_exceptions=True,
        )

        for key, outcome in zip(jobs, outcomes):
            if isinstance(outcome, CompiledModule):
                result.modules[key] = outcome
            elif isinstance(outcome, PageMillError):
                result.errors[key] = str(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome

        if result.errors:
            for (locale, path), message in sorted(result.errors.items()):
                self.logger.error("Failed to compile %s (%s): %s", path, locale or "<default>", message)
            if self.config.strict:
                first = min(result.errors)
                raise CompileError(
                    f"{len(result.errors)} document(s) failed to compile; first: {result.errors[first]}",
                    file_path=first[1],
                )

        self.registry.publish(trees)
        if write:
            writer = ArtifactWriter(self.config.output_root)
            result.written = list(writer.publish(trees, tables, result.modules))
        self.logger.info(
            "Built %d page(s) across %d locale(s) with %d error(s)",
            len(result.modules),
            len(trees),
            len(result.errors),
        )
        return result

    def _compile_one(self, locale: str, path: str) -> CompiledModule:
        return self.loader.load(path, locale, mode=MODE_FULL)


def document_keys(trees: Mapping[str, Folder]) -> List[DocumentKey]:
    return [(locale, document.path) for locale, tree in trees.items() for document in iter_documents(tree)]


__all__ = ["BuildResult", "Builder", "DocumentKey", "document_keys"]
