"""
Service layer running the upload pipeline for one request.

Path policy, collision avoidance and credential issuance are chained here so
FastAPI routes stay thin. The helpers call boto3 synchronously; routes run
them in the thread pool.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from .collisions import find_unused_key
from .config import ServerConfig
from .credentials import (
    IssuedCredential,
    PresignedUpload,
    issue_federation_token,
    presign_put,
)
from .errors import BurnerCredentialsDisabled
from .paths import ResolvedPath, resolve_upload_path

logger = logging.getLogger(__name__)


def resolve_path(
    config: ServerConfig,
    s3_client: Any,
    directory: Optional[str],
    object_name: Optional[str],
) -> ResolvedPath:
    """Apply the directory whitelist, then move the key off any existing object."""
    key = resolve_upload_path(config, directory, object_name)
    key = find_unused_key(s3_client, config.bucket, key)
    return ResolvedPath(bucket=config.bucket, key=key)


def create_presigned_upload(
    config: ServerConfig,
    s3_client: Any,
    directory: Optional[str],
    object_name: Optional[str],
) -> PresignedUpload:
    path = resolve_path(config, s3_client, directory, object_name)
    return presign_put(s3_client, path)


def create_burner_credentials(
    config: ServerConfig,
    s3_client: Any,
    sts_client: Any,
    directory: Optional[str],
    object_name: Optional[str],
) -> IssuedCredential:
    if not config.enable_burner_credentials:
        raise BurnerCredentialsDisabled()
    path = resolve_path(config, s3_client, directory, object_name)
    return issue_federation_token(sts_client, path)
