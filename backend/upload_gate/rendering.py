"""
Response formatting: JSON payloads for scripts and Jinja2 pages for people.

Template failures are not recoverable locally; they surface as a 500 with the
raw error text.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from .config import ServerConfig
from .credentials import IssuedCredential, PresignedUpload, public_url
from .errors import RenderError
from .models import BurnerCredentialResponse, TokenResponse

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Ruby date layout, e.g. "Mon Jan 02 15:04:05 +0000 2006"
EXPIRY_FORMAT = "%a %b %d %H:%M:%S %z %Y"


class Renderer:
    def __init__(self, config: ServerConfig, directory: Optional[Path] = None):
        self.config = config
        self.templates = Jinja2Templates(directory=str(directory or TEMPLATES_DIR))

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[Dict[str, Any]] = None,
        *,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> Response:
        page_context: Dict[str, Any] = {"config": self.config.template_data}
        page_context.update(context or {})
        try:
            return self.templates.TemplateResponse(
                request, name, page_context, status_code=status_code, headers=headers
            )
        except TemplateError as exc:
            logger.error("Rendering %s failed: %s", name, exc)
            raise RenderError(str(exc)) from exc


def render_error_response(exc: RenderError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=500)


def format_expiry(credential: IssuedCredential) -> str:
    return credential.expires_at.strftime(EXPIRY_FORMAT)


def token_payload(config: ServerConfig, upload: PresignedUpload) -> Dict[str, str]:
    response = TokenResponse(
        signed_request=upload.signed_url,
        url=public_url(upload.path.bucket, upload.path.key, config.public_host),
    )
    return response.model_dump(by_alias=True)


def burner_payload(config: ServerConfig, credential: IssuedCredential) -> Dict[str, str]:
    response = BurnerCredentialResponse(
        access_key_id=credential.access_key_id,
        secret_access_key=credential.secret_access_key,
        session_token=credential.session_token,
        expiration=credential.expires_at.isoformat(),
        bucket=credential.path.bucket,
        region=config.region,
        path=credential.path.key,
        url=public_url(credential.path.bucket, credential.path.key, config.public_host),
    )
    return response.model_dump(by_alias=True)


def burner_page_context(config: ServerConfig, credential: IssuedCredential) -> Dict[str, Any]:
    return {
        "bucket": credential.path.bucket,
        "region": config.region,
        "path": credential.path.key,
        "filename": credential.path.filename,
        "expiry": format_expiry(credential),
        "url": public_url(credential.path.bucket, credential.path.key, config.public_host),
        "exports": {
            "AWS_ACCESS_KEY_ID": credential.access_key_id,
            "AWS_SECRET_ACCESS_KEY": credential.secret_access_key,
            "AWS_SESSION_TOKEN": credential.session_token,
        },
    }
