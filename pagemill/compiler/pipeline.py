"""The document transform pipeline: parse, assign metadata, enrich, generate code."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import LatexConfig, PageMillConfig
from ..errors import CompileError
from ..logging import get_logger
from ..models import (
    FORMAT_RICH,
    MODE_FULL,
    MODE_METADATA,
    CompiledModule,
    Heading,
    Metadata,
    SourceFile,
)
from ..stages import HeadingsStage, HighlightStage, MathStage, Stage, StageContext, discover_stages
from ..stages.base import stage_signature
from .codegen import CodeGenerator
from .frontmatter import exported_metadata, split_front_matter
from .metadata import assign_metadata
from .syntax import ESM, YAML, DocumentParser, Node, ParseOptions

REMOTE_FILE_PATH = "<remote>"


class CompileState(IntEnum):
    UNPARSED = 0
    PARSED = 1
    METADATA_ASSIGNED = 2
    TOC_COLLECTED = 3
    MATH_REWRITTEN = 4
    ENRICHED = 5
    CODEGENNED = 6


@dataclass(frozen=True)
class CompilerOptions:
    """Options that influence compiled output; part of every cache key."""

    latex: LatexConfig = field(default_factory=LatexConfig)
    code_highlight: bool = True
    default_show_copy_code: bool = False
    reading_time: bool = False
    format: str = "detect"
    stages: Tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: PageMillConfig) -> "CompilerOptions":
        return cls(
            latex=config.latex,
            code_highlight=config.code_highlight,
            default_show_copy_code=config.default_show_copy_code,
            reading_time=config.reading_time,
            format=config.format,
            stages=tuple(config.stages),
        )

    def signature(self) -> str:
        payload = json.dumps(asdict(self), sort_keys=True, default=str)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


@dataclass
class CompilationUnit:
    """One document moving through the pipeline states."""

    source: SourceFile
    file_path: str
    remote: bool = False
    timestamp: Optional[int] = None
    state: CompileState = CompileState.UNPARSED
    tree: Optional[Node] = None
    front_matter: Dict[str, Any] = field(default_factory=dict)
    metadata: Optional[Metadata] = None
    toc: Tuple[Heading, ...] = ()
    code: Optional[str] = None
    participants: List[str] = field(default_factory=list)

    def advance(self, state: CompileState) -> None:
        if state != self.state + 1:
            raise RuntimeError(f"Illegal pipeline transition {self.state.name} -> {state.name}")
        self.state = state


class DocumentCompiler:
    """Compiles document sources into metadata-only or full page modules."""

    def __init__(
        self,
        options: CompilerOptions | None = None,
        *,
        stages: Sequence[Stage] | None = None,
        highlighter: Callable[[str, str], str] | None = None,
        codegen: CodeGenerator | None = None,
    ) -> None:
        self.options = options or CompilerOptions()
        self.logger = get_logger("compiler")
        self._headings = HeadingsStage()
        self._math = MathStage()
        self._enrichers: List[Stage] = [HighlightStage(highlighter)]
        plugins = list(stages) if stages is not None else discover_stages(self.options.stages)
        self._enrichers.extend(plugins)
        self._codegen = codegen or CodeGenerator()

    @property
    def stages(self) -> List[Stage]:
        return [self._headings, self._math, *self._enrichers]

    @property
    def signature(self) -> str:
        stages = ",".join(stage_signature(stage) for stage in self.stages)
        return f"{self.options.signature()}|{stages}"

    # ------------------------------------------------------------------
    # Public API

    def compile_metadata(
        self, source: SourceFile, *, file_path: str | None = None, timestamp: int | None = None
    ) -> CompiledModule:
        """Parse and assign metadata only; no stages and no render function."""
        unit = self._unit(source, file_path, timestamp)
        self.run(unit, until=CompileState.METADATA_ASSIGNED)
        assert unit.metadata is not None
        code = self._codegen.generate_metadata(unit.metadata)
        return CompiledModule(mode=MODE_METADATA, code=code, metadata=unit.metadata)

    def compile(
        self, source: SourceFile, *, file_path: str | None = None, timestamp: int | None = None
    ) -> CompiledModule:
        """Run every pass and return an executable page module."""
        unit = self._unit(source, file_path, timestamp)
        self.run(unit)
        assert unit.metadata is not None and unit.code is not None
        return CompiledModule(mode=MODE_FULL, code=unit.code, metadata=unit.metadata, toc=unit.toc)

    def compile_remote(self, text: str, *, file_path: str = REMOTE_FILE_PATH) -> CompiledModule:
        """Compile free-standing rich-dialect content whose components come from the caller."""
        source = SourceFile.from_text(text, path=Path("remote.mdx"), format=FORMAT_RICH)
        unit = CompilationUnit(source=source, file_path=file_path, remote=True)
        self.run(unit)
        assert unit.metadata is not None and unit.code is not None
        return CompiledModule(mode=MODE_FULL, code=unit.code, metadata=unit.metadata, toc=unit.toc)

    def run(self, unit: CompilationUnit, until: CompileState = CompileState.CODEGENNED) -> CompilationUnit:
        passes = {
            CompileState.PARSED: self._parse,
            CompileState.METADATA_ASSIGNED: self._assign_metadata,
            CompileState.TOC_COLLECTED: self._collect_toc,
            CompileState.MATH_REWRITTEN: self._rewrite_math,
            CompileState.ENRICHED: self._enrich,
            CompileState.CODEGENNED: self._generate,
        }
        while unit.state < until:
            target = CompileState(unit.state + 1)
            passes[target](unit)
            unit.advance(target)
        return unit

    # ------------------------------------------------------------------
    # Passes

    def _parse(self, unit: CompilationUnit) -> None:
        try:
            text = unit.source.text.replace("\r\n", "\n").replace("\r", "\n")
        except UnicodeDecodeError as exc:
            raise CompileError(f"Document is not valid UTF-8: {exc.reason}", file_path=unit.file_path) from exc
        parse_options = ParseOptions(
            rich=unit.source.format == FORMAT_RICH,
            math=self.options.latex.enabled,
        )
        try:
            front = split_front_matter(text)
            tree = DocumentParser(parse_options).parse(front.body, line_offset=front.body_offset)
        except CompileError as exc:
            raise exc.with_file(unit.file_path) from exc
        if front.raw is not None:
            tree.children.insert(0, Node(type=YAML, value=front.raw, data={"front_matter": front.data}, line=1))
        unit.tree = tree
        unit.front_matter = front.data
        self.logger.debug("Parsed %s (%d top-level nodes)", unit.file_path, len(tree.children))

    def _assign_metadata(self, unit: CompilationUnit) -> None:
        assert unit.tree is not None
        declared = dict(unit.front_matter)
        has_front_matter = any(child.type == YAML for child in unit.tree.children)
        for child in unit.tree.children:
            if child.type != ESM:
                continue
            try:
                exported = exported_metadata(child.data.get("exports", {}), line=child.line)
            except CompileError as exc:
                raise exc.with_file(unit.file_path) from exc
            if exported is None:
                continue
            if has_front_matter:
                raise CompileError(
                    "Both front matter and an exported `metadata` are declared; use only one",
                    file_path=unit.file_path,
                    line=child.line,
                    column=1,
                )
            declared = exported
        unit.metadata = assign_metadata(
            declared,
            unit.tree,
            file_path=unit.file_path,
            timestamp=unit.timestamp,
            reading_time=self.options.reading_time,
        )

    def _collect_toc(self, unit: CompilationUnit) -> None:
        unit.tree = self._run_stage(self._headings, unit)
        assert unit.tree is not None
        unit.toc = tuple(unit.tree.data.get("toc", ()))

    def _rewrite_math(self, unit: CompilationUnit) -> None:
        if self.options.latex.enabled:
            unit.tree = self._run_stage(self._math, unit)

    def _enrich(self, unit: CompilationUnit) -> None:
        for stage in self._enrichers:
            unit.tree = self._run_stage(stage, unit)

    def _generate(self, unit: CompilationUnit) -> None:
        assert unit.tree is not None and unit.metadata is not None
        unit.code = self._codegen.generate(unit.tree, unit.metadata, unit.toc, remote=unit.remote)

    # ------------------------------------------------------------------
    # Internal helpers

    def _run_stage(self, stage: Stage, unit: CompilationUnit) -> Node:
        assert unit.tree is not None
        context = StageContext(
            options=stage.options_for(self.options),
            compile_options=self.options,
            file_path=unit.file_path,
            remote=unit.remote,
        )
        tree = stage.run(unit.tree, context)
        if context.participated:
            unit.participants.append(stage.name)
            self.logger.debug("Stage '%s' rewrote %s", stage.name, unit.file_path)
        return tree

    def _unit(self, source: SourceFile, file_path: str | None, timestamp: int | None) -> CompilationUnit:
        return CompilationUnit(
            source=source,
            file_path=file_path or source.path.as_posix(),
            timestamp=timestamp,
        )


__all__ = [
    "CompilationUnit",
    "CompileState",
    "CompilerOptions",
    "DocumentCompiler",
    "REMOTE_FILE_PATH",
]
