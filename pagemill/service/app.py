"""FastAPI application entrypoint for pagemill service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..build import Builder
from ..config import METADATA_ONLY_QUERY
from ..errors import CompileError, MissingComponentError, NotFoundError, UndefinedExportError
from ..logging import get_logger
from ..page_map.builder import find_subtree
from ..runtime import Element
from ..tsdoc import generate_definition


class HealthResponse(BaseModel):
    status: str


class PageResponse(BaseModel):
    metadata: Dict[str, Any]
    toc: Optional[List[Dict[str, Any]]] = None
    tree: Optional[Dict[str, Any]] = None


class TypeDocRequest(BaseModel):
    code: str
    export_name: str = "default"
    flattened: bool = False
    file_path: Optional[str] = None


_LOGGER = get_logger("service")


def create_app(builder_factory: Callable[[], Builder]) -> FastAPI:
    """Create the FastAPI application serving page maps and pages from one builder."""

    app = FastAPI(title="pagemill", version="1.0.0")
    state: Dict[str, Builder] = {}

    async def get_builder() -> Builder:
        builder = state.get("builder")
        if builder is None:
            builder = builder_factory()
            await _run_blocking(builder.refresh)
            state["builder"] = builder
        return builder

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/page-map")
    async def page_map(
        locale: str = "",
        route: Optional[str] = None,
        builder: Builder = Depends(get_builder),
    ) -> Any:
        try:
            root = builder.registry.page_map(locale)
            children = find_subtree(root, route) if route else root.children
        except NotFoundError as exc:
            return JSONResponse(status_code=404, content={"detail": str(exc)})
        return [child.to_dict() for child in children]

    @app.get("/routes")
    async def routes(locale: str = "", builder: Builder = Depends(get_builder)) -> Any:
        try:
            return builder.registry.route_table(locale).to_dict()
        except NotFoundError as exc:
            return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.get("/pages/{path:path}")
    async def page(
        path: str,
        locale: str = "",
        metadata: bool = False,
        builder: Builder = Depends(get_builder),
    ) -> Any:
        request = f"{path}{METADATA_ONLY_QUERY}" if metadata else path
        try:
            loaded = await _run_blocking(lambda: builder.pages.load_request(request, locale))
        except NotFoundError as exc:
            return JSONResponse(status_code=404, content={"detail": str(exc)})
        except CompileError as exc:
            return JSONResponse(
                status_code=422, content={"detail": exc.message, "location": exc.location}
            )
        if metadata:
            return PageResponse(metadata=loaded["metadata"])
        try:
            rendered = loaded["default"]()
        except MissingComponentError as exc:
            _LOGGER.error("Rendering %s failed: %s", path or "/", exc)
            return JSONResponse(status_code=500, content={"detail": str(exc)})
        tree = rendered.to_dict() if isinstance(rendered, Element) else None
        return PageResponse(metadata=loaded["metadata"], toc=loaded["toc"], tree=tree)

    @app.get("/static-params")
    async def static_params(
        segment_key: str = Query("mdxPath"),
        locale_key: str = Query("lang"),
        builder: Builder = Depends(get_builder),
    ) -> List[Dict[str, Any]]:
        return builder.pages.generate_static_params_for(segment_key, locale_key)()

    @app.post("/tsdoc")
    async def tsdoc(payload: TypeDocRequest) -> Any:
        def _extract() -> Dict[str, Any]:
            definition = generate_definition(
                payload.code,
                export_name=payload.export_name,
                flattened=payload.flattened,
                file_path=payload.file_path,
            )
            return definition.to_dict()

        try:
            return await _run_blocking(_extract)
        except UndefinedExportError as exc:
            return JSONResponse(status_code=404, content={"detail": str(exc)})

    return app


async def _run_blocking(func: Callable[[], Any]) -> Any:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, func)


__all__ = ["create_app"]
