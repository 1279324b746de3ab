"""
Shared helpers for creating the boto3 clients the upload gate talks to.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config

from .config import ServerConfig


@dataclass(frozen=True)
class StoreClients:
    s3: Any
    sts: Any


def _session(config: ServerConfig) -> boto3.session.Session:
    return boto3.session.Session(
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        region_name=config.region,
    )


def create_clients(config: ServerConfig) -> StoreClients:
    """
    Build S3 and STS clients bound to the service credentials.

    boto3 clients are thread-safe, so one pair is shared by every request.
    """
    session = _session(config)
    s3 = session.client(
        "s3",
        endpoint_url=config.endpoint_url,
        config=Config(signature_version="s3v4"),
    )
    sts = session.client("sts")
    return StoreClients(s3=s3, sts=sts)
