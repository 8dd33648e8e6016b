"""CLI entrypoints for pagemill commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .build import Builder
from .compiler.cache import CompileCache
from .compiler.pipeline import CompilerOptions, DocumentCompiler
from .config import PageMillConfig, load_config
from .errors import PageMillError
from .logging import configure_logging
from .scanner import SourceTreeScanner

CACHE_FILENAME = ".pagemill-cache.json"


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_project_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project",
        default=".",
        help="Project directory containing .pagemill.yml (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagemill",
        description="Compile a tree of markdown documents into page maps and page modules.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Compile every document and write artifacts.")
    _add_verbose_option(build_parser, suppress_default=True)
    _add_project_option(build_parser)
    build_parser.add_argument(
        "--dev",
        action="store_true",
        help="Record per-document failures instead of aborting the build.",
    )
    build_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not read or persist the compile cache.",
    )

    routes_parser = subparsers.add_parser("routes", help="Print the route table of a locale.")
    _add_verbose_option(routes_parser, suppress_default=True)
    _add_project_option(routes_parser)
    routes_parser.add_argument("--locale", default="", help="Locale to print (defaults to the default locale).")

    compile_parser = subparsers.add_parser("compile", help="Compile a single document to stdout.")
    _add_verbose_option(compile_parser, suppress_default=True)
    _add_project_option(compile_parser)
    compile_parser.add_argument("file", help="Document to compile.")
    compile_parser.add_argument(
        "--metadata",
        action="store_true",
        help="Emit the metadata-only module instead of the full page module.",
    )

    tsdoc_parser = subparsers.add_parser("tsdoc", help="Extract a TypeScript type definition as JSON.")
    _add_verbose_option(tsdoc_parser, suppress_default=True)
    tsdoc_parser.add_argument("file", help="TypeScript source file.")
    tsdoc_parser.add_argument("--export", dest="export_name", default="default", help="Export to resolve.")
    tsdoc_parser.add_argument("--flattened", action="store_true", help="Inline nested object fields.")

    serve_parser = subparsers.add_parser("serve", help="Serve pages over HTTP with lazy compilation.")
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_project_option(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pagemill commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        if args.command == "build":
            _run_build(args)
        elif args.command == "routes":
            _run_routes(args)
        elif args.command == "compile":
            _run_compile(args)
        elif args.command == "tsdoc":
            _run_tsdoc(args)
        elif args.command == "serve":
            _run_serve(args)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except PageMillError as exc:
        parser.exit(1, f"pagemill {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _load(args: argparse.Namespace) -> PageMillConfig:
    return load_config(Path(args.project).expanduser().resolve())


def _run_build(args: argparse.Namespace) -> None:
    config = _load(args)
    if args.dev:
        config.strict = False
    cache = CompileCache(None if args.no_cache else config.root / CACHE_FILENAME)
    builder = Builder(config, cache=cache)
    result = builder.build()
    cache.persist()
    for (locale, path), message in sorted(result.errors.items()):
        print(f"error: [{locale or 'default'}] {path}: {message}", file=sys.stderr)
    print(
        f"Built {len(result.modules)} page(s) into {_relativize(config.output_root)}"
        + (f" with {len(result.errors)} error(s)" if result.errors else "")
    )


def _run_routes(args: argparse.Namespace) -> None:
    builder = Builder(_load(args))
    builder.refresh()
    table = builder.registry.route_table(args.locale)
    for route, path in table.to_dict().items():
        print(f"/{route}\t{path}")


def _run_compile(args: argparse.Namespace) -> None:
    config = _load(args)
    compiler = DocumentCompiler(CompilerOptions.from_config(config))
    file_path = Path(args.file).expanduser().resolve()
    scanner = SourceTreeScanner(forced_format=config.format)
    source = scanner.read_source(file_path)
    if args.metadata:
        module = compiler.compile_metadata(source, file_path=_relativize(file_path))
    else:
        module = compiler.compile(source, file_path=_relativize(file_path))
    sys.stdout.write(module.code)


def _run_tsdoc(args: argparse.Namespace) -> None:
    from .tsdoc import generate_definition

    path = Path(args.file).expanduser()
    definition = generate_definition(
        path.read_text(encoding="utf-8"),
        export_name=args.export_name,
        flattened=args.flattened,
        file_path=str(path),
    )
    print(json.dumps(definition.to_dict(), indent=2))


def _run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    from .service import create_app

    config = _load(args)

    def _factory() -> Builder:
        return Builder(config)

    app: Any = create_app(_factory)
    uvicorn.run(app, host=args.host, port=args.port)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
