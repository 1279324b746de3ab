"""
Exception taxonomy for the upload gate.

Request-scoped errors carry the HTTP status they map to; the FastAPI exception
handler in ``upload_gate.application`` turns them into ``{"error": message}``
bodies. Gate rejections are rendered as HTML pages instead.
"""
from __future__ import annotations

from typing import Dict, Optional


class ConfigError(Exception):
    """Fatal configuration problem detected at startup."""


class UploadGateError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidUploadRequest(UploadGateError):
    status_code = 400


class InvalidDirectory(UploadGateError):
    # Client input, but reported as 500 to stay compatible with existing uploaders.
    status_code = 500

    def __init__(self, directory: str):
        super().__init__(f"invalid directory for uploading: '{directory}'")
        self.directory = directory


class DirectoryUploadsUnsupported(UploadGateError):
    status_code = 500

    def __init__(self):
        super().__init__("this server does not support uploading to directories")


class BurnerCredentialsDisabled(UploadGateError):
    status_code = 404

    def __init__(self):
        super().__init__("this server does not support burner credentials")


class StorageListError(UploadGateError):
    pass


class InvalidScopeRequest(UploadGateError):
    pass


class CredentialIssuanceError(UploadGateError):
    pass


class RenderError(UploadGateError):
    pass


class GateRejection(Exception):
    """Terminal outcome of a request filter, rendered with ``template``."""

    status_code = 500
    template = "not_found.html"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}


class AuthenticationFailure(GateRejection):
    status_code = 401
    template = "access_denied.html"


class DeadlineExceeded(GateRejection):
    status_code = 403
    template = "expired.html"
