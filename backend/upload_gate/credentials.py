"""
Credential issuance for a single resolved upload key.

Two modes are supported:

* federation tokens: a temporary STS identity restricted by a scope document
  to one key, valid for 24 hours. Suited to command line tools.
* presigned requests: one signed PUT URL (public-read ACL) valid for 15
  minutes. Suited to browser uploads.

Nothing about issued credentials is kept locally; expiry is enforced upstream.
Upstream failures are surfaced as ``CredentialIssuanceError`` and never
retried here.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from .errors import CredentialIssuanceError
from .paths import ResolvedPath
from .policy import ScopeDocument, build_scope_document

logger = logging.getLogger(__name__)

FEDERATION_TOKEN_TTL = timedelta(hours=24)
PRESIGNED_URL_TTL = timedelta(minutes=15)
PUBLIC_READ_ACL = "public-read"


@dataclass(frozen=True)
class IssuedCredential:
    username: str
    path: ResolvedPath
    scope: ScopeDocument
    access_key_id: str
    secret_access_key: str
    session_token: str
    issued_at: datetime
    expires_at: datetime
    federated_user_id: Optional[str] = None
    federated_user_arn: Optional[str] = None


@dataclass(frozen=True)
class PresignedUpload:
    path: ResolvedPath
    signed_url: str
    issued_at: datetime
    expires_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def federation_username(now: Optional[datetime] = None) -> str:
    """
    Name the temporary identity after the current UTC minute.

    Names are not unique across requests; only the attached scope matters.
    """
    now = now or _utcnow()
    return f"user_{now.astimezone(timezone.utc).strftime('%Y_%m_%d_%H_%M')}"


def public_url(bucket: str, key: str, public_host: str) -> str:
    return f"https://{bucket}.{public_host}/{quote(key)}"


def issue_federation_token(
    sts_client: Any,
    path: ResolvedPath,
    *,
    username: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IssuedCredential:
    issued_at = now or _utcnow()
    scope = build_scope_document(path.bucket, path.key)
    name = username or federation_username(issued_at)
    try:
        response = sts_client.get_federation_token(
            Name=name,
            Policy=scope.to_json(),
            DurationSeconds=int(FEDERATION_TOKEN_TTL.total_seconds()),
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("Federation token request for %s failed: %s", path.resource, exc)
        raise CredentialIssuanceError(str(exc)) from exc

    creds = response.get("Credentials") or {}
    if not creds.get("AccessKeyId") or not creds.get("SecretAccessKey"):
        raise CredentialIssuanceError("identity provider returned no credentials")
    federated_user = response.get("FederatedUser") or {}

    logger.info("Issued federation token %s scoped to %s", name, path.resource)
    return IssuedCredential(
        username=name,
        path=path,
        scope=scope,
        access_key_id=creds["AccessKeyId"],
        secret_access_key=creds["SecretAccessKey"],
        session_token=creds.get("SessionToken", ""),
        issued_at=issued_at,
        expires_at=issued_at + FEDERATION_TOKEN_TTL,
        federated_user_id=federated_user.get("FederatedUserId"),
        federated_user_arn=federated_user.get("Arn"),
    )


def presign_put(
    s3_client: Any,
    path: ResolvedPath,
    *,
    now: Optional[datetime] = None,
) -> PresignedUpload:
    issued_at = now or _utcnow()
    try:
        url = s3_client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": path.bucket, "Key": path.key, "ACL": PUBLIC_READ_ACL},
            ExpiresIn=int(PRESIGNED_URL_TTL.total_seconds()),
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("Presigning PUT for %s failed: %s", path.resource, exc)
        raise CredentialIssuanceError(str(exc)) from exc

    return PresignedUpload(
        path=path,
        signed_url=url,
        issued_at=issued_at,
        expires_at=issued_at + PRESIGNED_URL_TTL,
    )
