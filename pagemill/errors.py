"""Error taxonomy shared by the scanner, compiler and loaders."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PageMillError(RuntimeError):
    """Base class for every error raised by pagemill."""


class ConfigError(PageMillError):
    """Raised when the configuration file cannot be parsed."""


class ScanError(PageMillError):
    """Raised when the content root or a declared locale folder is missing."""


class DuplicateRouteError(PageMillError):
    """Raised when two documents resolve to the same route within one locale."""

    def __init__(self, route: str, first: str, second: str, locale: str = "") -> None:
        self.route = route
        self.first = first
        self.second = second
        self.locale = locale
        where = f" in locale '{locale}'" if locale else ""
        super().__init__(
            f"Duplicate route '/{route}'{where}: both '{first}' and '{second}' resolve to it"
        )


class CompileError(PageMillError):
    """Raised when a document's syntax or front matter cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        file_path: str | Path | None = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.message = message
        self.file_path = str(file_path) if file_path is not None else None
        self.line = line
        self.column = column
        super().__init__(self._format())

    @property
    def location(self) -> str:
        """Human-readable `path:line:column` location of the failure."""
        parts = [self.file_path or "<unknown>"]
        if self.line is not None:
            parts.append(str(self.line))
            if self.column is not None:
                parts.append(str(self.column))
        return ":".join(parts)

    def with_file(self, file_path: str | Path) -> "CompileError":
        """Return a copy of this error bound to ``file_path``."""
        return CompileError(self.message, file_path=file_path, line=self.line, column=self.column)

    def _format(self) -> str:
        return f"{self.location}: {self.message}"


class UndefinedExportError(PageMillError):
    """Raised when a type-documentation target is not exported by the source."""

    def __init__(self, export_name: str, file_path: str | None = None) -> None:
        self.export_name = export_name
        self.file_path = file_path
        source = file_path or "<inline code>"
        super().__init__(f'Export "{export_name}" is not defined in "{source}"')


class NotFoundError(PageMillError, LookupError):
    """Raised when a route or page-map segment cannot be resolved."""

    def __init__(self, route: str, locale: str = "") -> None:
        self.route = route
        self.locale = locale
        where = f" for locale '{locale}'" if locale else ""
        super().__init__(f"No page found at '/{route.strip('/')}'{where}")


class MissingComponentError(PageMillError):
    """Raised at render time when a referenced component was never provided."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Expected component `{name}` to be defined: you likely forgot to import, "
            "pass, or provide it."
        )


__all__ = [
    "CompileError",
    "ConfigError",
    "DuplicateRouteError",
    "MissingComponentError",
    "NotFoundError",
    "PageMillError",
    "ScanError",
    "UndefinedExportError",
]
