"""
FastAPI application factory.

The immutable ``ServerConfig``, the shared boto3 clients and the template
renderer are attached to ``app.state`` once and read by every request.
"""
from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from .backend_clients import StoreClients, create_clients
from .config import ServerConfig
from .errors import RenderError, UploadGateError
from .gate import RequestGate
from .models import ErrorResponse
from .rendering import Renderer, render_error_response
from .routes import router

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


def create_app(
    config: ServerConfig,
    clients: Optional[StoreClients] = None,
    *,
    templates_dir: Optional[Path] = None,
    static_dir: Optional[Path] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    app = FastAPI(title="S3 Upload Gate")
    renderer = Renderer(config, templates_dir)

    app.state.config = config
    app.state.clients = clients or create_clients(config)
    app.state.renderer = renderer

    app.add_middleware(BaseHTTPMiddleware, dispatch=RequestGate(config, renderer, clock=clock))

    @app.exception_handler(RenderError)
    async def render_error_handler(request: Request, exc: RenderError) -> Response:
        return render_error_response(exc)

    @app.exception_handler(UploadGateError)
    async def upload_error_handler(request: Request, exc: UploadGateError) -> Response:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            ErrorResponse(error=exc.message).model_dump(), status_code=exc.status_code
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            try:
                return renderer.render(request, "not_found.html", status_code=404)
            except RenderError as render_exc:
                return render_error_response(render_exc)
        return JSONResponse(
            ErrorResponse(error=str(exc.detail)).model_dump(),
            status_code=exc.status_code,
            headers=exc.headers,
        )

    static_root = static_dir or STATIC_DIR
    app.mount("/css", StaticFiles(directory=str(static_root / "css"), check_dir=False), name="css")
    app.mount("/js", StaticFiles(directory=str(static_root / "js"), check_dir=False), name="js")

    app.include_router(router)
    return app
