"""
Request gate run in front of every page and credential endpoint.

Requests pass an ordered chain of filters (authentication, then deadline).
A filter returns ``None`` to let the request continue or raises a
``GateRejection`` which becomes the terminal response. Requests that make it
through are dispatched to the route and the response is decorated with CORS
headers when the caller's origin is allowed.

Preflight ``OPTIONS`` requests for the credential endpoints and static assets
bypass the gate.
"""
from __future__ import annotations

from datetime import datetime, timezone
import hmac
import logging
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple

from fastapi import HTTPException, Request
from fastapi.responses import Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .config import ServerConfig
from .errors import AuthenticationFailure, DeadlineExceeded, GateRejection, RenderError
from .rendering import Renderer, render_error_response

logger = logging.getLogger(__name__)

AUTH_REALM = "Please enter your username and password for this site"
PREFLIGHT_PATHS = frozenset({"/token", "/burner"})
STATIC_PREFIXES = ("/css/", "/js/")

RequestFilter = Callable[[Request, ServerConfig, datetime], Awaitable[None]]

basic_auth = HTTPBasic(realm=AUTH_REALM, auto_error=False)


async def read_basic_credentials(request: Request) -> Optional[HTTPBasicCredentials]:
    # HTTPBasic raises on a malformed header even with auto_error disabled.
    try:
        return await basic_auth(request)
    except HTTPException:
        return None


def credentials_match(config: ServerConfig, username: str, password: str) -> bool:
    # Both comparisons always run so timing does not reveal which field differed.
    user_ok = hmac.compare_digest(username.encode("utf-8"), config.auth_username.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), config.auth_password.encode("utf-8"))
    return user_ok and pass_ok


async def authenticate(request: Request, config: ServerConfig, now: datetime) -> None:
    if not config.auth_enabled:
        return None
    supplied = await read_basic_credentials(request)
    if supplied is None or not credentials_match(config, supplied.username, supplied.password):
        raise AuthenticationFailure(
            "access denied",
            headers={"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'},
        )
    return None


async def enforce_deadline(request: Request, config: ServerConfig, now: datetime) -> None:
    if config.deadline is not None and now > config.deadline:
        raise DeadlineExceeded("the deadline for uploading has passed")
    return None


DEFAULT_FILTERS: Tuple[RequestFilter, ...] = (authenticate, enforce_deadline)


def cors_headers(config: ServerConfig, origin: Optional[str]) -> Dict[str, str]:
    if not origin or origin not in config.allowed_origins:
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Credentials": "true",
    }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestGate:
    """HTTP middleware applying ``filters`` in order before dispatch."""

    def __init__(
        self,
        config: ServerConfig,
        renderer: Renderer,
        filters: Sequence[RequestFilter] = DEFAULT_FILTERS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self.renderer = renderer
        self.filters = tuple(filters)
        self.clock = clock or _utcnow

    def is_exempt(self, request: Request) -> bool:
        path = request.url.path
        if request.method == "OPTIONS" and path in PREFLIGHT_PATHS:
            return True
        return path.startswith(STATIC_PREFIXES)

    async def check(self, request: Request) -> None:
        now = self.clock()
        for request_filter in self.filters:
            await request_filter(request, self.config, now)

    def reject(self, request: Request, rejection: GateRejection) -> Response:
        logger.warning(
            "Rejected %s %s with %s: %s",
            request.method,
            request.url.path,
            rejection.status_code,
            rejection.message,
        )
        try:
            return self.renderer.render(
                request,
                rejection.template,
                {"message": rejection.message},
                status_code=rejection.status_code,
                headers=rejection.headers,
            )
        except RenderError as exc:
            return render_error_response(exc)

    async def __call__(self, request: Request, call_next) -> Response:
        if self.is_exempt(request):
            return await call_next(request)

        logger.info("%s %s", request.method, request.url.path)
        try:
            await self.check(request)
        except GateRejection as rejection:
            return self.reject(request, rejection)

        response = await call_next(request)
        response.headers.update(cors_headers(self.config, request.headers.get("origin")))
        return response
