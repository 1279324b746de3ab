"""
Page and credential routes.

Routes only deal with HTTP concerns; the upload pipeline lives in
``upload_gate.services`` and runs in the thread pool because boto3 blocks.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from .backend_clients import StoreClients
from .config import ServerConfig
from .gate import cors_headers
from .rendering import Renderer, burner_page_context, burner_payload, token_payload
from . import services

router = APIRouter(tags=["uploads"])


def get_config(request: Request) -> ServerConfig:
    return request.app.state.config


def get_clients(request: Request) -> StoreClients:
    return request.app.state.clients


def get_renderer(request: Request) -> Renderer:
    return request.app.state.renderer


def preflight(request: Request, config: ServerConfig = Depends(get_config)) -> Response:
    return Response(status_code=200, headers=cors_headers(config, request.headers.get("origin")))


router.add_api_route("/token", preflight, methods=["OPTIONS"], include_in_schema=False)
router.add_api_route("/burner", preflight, methods=["OPTIONS"], include_in_schema=False)


@router.get("/")
async def home(request: Request, renderer: Renderer = Depends(get_renderer)):
    return renderer.render(request, "index.html")


@router.get("/token")
async def sign_upload(
    object_name: Optional[str] = None,
    directory: Optional[str] = Query(default=None, alias="dir"),
    config: ServerConfig = Depends(get_config),
    clients: StoreClients = Depends(get_clients),
):
    """Return a presigned PUT URL for ``object_name`` plus its public URL."""
    upload = await run_in_threadpool(
        services.create_presigned_upload, config, clients.s3, directory, object_name
    )
    return JSONResponse(token_payload(config, upload))


@router.get("/burner")
async def burner_credentials(
    request: Request,
    object_name: Optional[str] = None,
    directory: Optional[str] = Query(default=None, alias="dir"),
    response_format: Optional[str] = Query(default=None, alias="format"),
    config: ServerConfig = Depends(get_config),
    clients: StoreClients = Depends(get_clients),
    renderer: Renderer = Depends(get_renderer),
):
    """
    Issue a 24 hour federation token that can only write ``object_name``.

    ``format=json`` returns the credentials as JSON; otherwise a page with
    copy-pasteable shell exports is rendered.
    """
    credential = await run_in_threadpool(
        services.create_burner_credentials,
        config,
        clients.s3,
        clients.sts,
        directory,
        object_name,
    )
    if response_format == "json":
        return JSONResponse(burner_payload(config, credential))
    return renderer.render(request, "burner.html", burner_page_context(config, credential))
