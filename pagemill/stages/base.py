"""Base classes for enrichment stages."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..compiler.syntax import Node


@dataclass
class StageContext:
    """Per-stage view of one compilation."""

    options: Dict[str, Any] = field(default_factory=dict)
    compile_options: Any = None
    file_path: str = "<memory>"
    remote: bool = False
    participated: bool = False

    def mark_participated(self) -> None:
        self.participated = True


class Stage(ABC):
    """Contract for stages that rewrite the document tree between parse and codegen."""

    name: str = ""

    def options_for(self, compile_options: Any) -> Dict[str, Any]:
        """Return the options bag this stage reads from the compile options."""
        return {}

    @abstractmethod
    def run(self, tree: Node, context: StageContext) -> Node:
        """Return the (possibly rewritten) tree; stages without matches return it unchanged."""


def stage_signature(stage: Stage) -> str:
    identity: Optional[str] = getattr(stage, "version", None)
    return f"{stage.name or type(stage).__name__}:{identity or '1'}"


__all__ = ["Stage", "StageContext", "stage_signature"]
