"""
Centralized configuration for the upload gate.

Settings come from two places: an optional ``config.json`` in the working
directory, then environment variables. Any non-empty environment variable
overrides the JSON value. The resulting ``ServerConfig`` is built once at
startup and is read-only afterwards; changing settings requires a restart.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_PORT = 8080
DEFAULT_PUBLIC_HOST = "s3.amazonaws.com"

REQUIRED_SETTINGS = (
    "AWS_REGION",
    "AWS_S3_BUCKET_NAME",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
)

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ServerConfig:
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    auth_username: Optional[str] = None
    auth_password: Optional[str] = None
    # timezone-aware; uploads are refused once this moment has passed
    deadline: Optional[datetime] = None
    # whitelist for the "dir" query parameter; empty disables directory uploads
    upload_dirs: Tuple[str, ...] = ()
    allowed_origins: FrozenSet[str] = frozenset()
    template_data: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    port: int = DEFAULT_PORT
    enable_burner_credentials: bool = False
    endpoint_url: Optional[str] = None
    public_host: str = DEFAULT_PUBLIC_HOST

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_username and self.auth_password)


def split_list(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


_DEADLINE_ADAPTER = TypeAdapter(datetime)


def parse_deadline(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 deadline such as ``2017-02-20T17:54:14.271Z``.

    Naive timestamps are taken to be UTC.
    """
    if value in (None, ""):
        return None
    try:
        parsed = _DEADLINE_ADAPTER.validate_python(value.strip() if isinstance(value, str) else value)
    except ValidationError as exc:
        raise ConfigError(f"invalid DEADLINE {value!r}: {exc.errors()[0]['msg']}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigError(f"error reading {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"error parsing {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"error parsing {path}: expected a JSON object")
    return data


def _json_list(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return split_list(value)
    return tuple(str(item).strip() for item in value if str(item).strip())


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _require(values: Mapping[str, Optional[str]], keys: Iterable[str]) -> None:
    for key in keys:
        if not values.get(key):
            raise ConfigError(f"{key} env variable or config key must be set")


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """
    Build the process-wide ``ServerConfig``.

    Raises ``ConfigError`` when the file is unreadable, a value is malformed,
    or any of ``REQUIRED_SETTINGS`` is missing from both sources.
    """
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env.get("UPLOAD_GATE_CONFIG") or DEFAULT_CONFIG_PATH)
    data = _read_config_file(path)

    def setting(key: str, json_key: Optional[str] = None) -> Optional[str]:
        from_env = env.get(key)
        if from_env:
            return from_env
        value = data.get(json_key or key)
        return None if value is None else str(value)

    strings = {key: setting(key) for key in REQUIRED_SETTINGS}
    _require(strings, REQUIRED_SETTINGS)

    raw_port = setting("PORT", "port") or str(DEFAULT_PORT)
    try:
        port = int(raw_port)
    except ValueError as exc:
        raise ConfigError(f"invalid PORT {raw_port!r}") from exc

    upload_dirs = split_list(env.get("UPLOAD_DIRS")) or _json_list(data.get("UPLOAD_DIRS"))
    allowed_origins = split_list(env.get("ALLOWED_ORIGINS")) or _json_list(
        data.get("ALLOWED_ORIGINS")
    )

    burner = env.get("ENABLE_BURNER_CREDENTIALS")
    if burner:
        enable_burner = _as_bool(burner)
    else:
        enable_burner = _as_bool(data.get("enable_burner_credentials", False))

    template_data = data.get("template_data") or {}
    if not isinstance(template_data, dict):
        raise ConfigError("template_data must be a JSON object")
    template_data = dict(template_data)
    template_data["upload_dirs"] = list(upload_dirs)

    return ServerConfig(
        region=strings["AWS_REGION"],
        bucket=strings["AWS_S3_BUCKET_NAME"],
        access_key_id=strings["AWS_ACCESS_KEY_ID"],
        secret_access_key=strings["AWS_SECRET_ACCESS_KEY"],
        auth_username=setting("HTTP_AUTH_USERNAME"),
        auth_password=setting("HTTP_AUTH_PASSWORD"),
        deadline=parse_deadline(env.get("DEADLINE") or data.get("DEADLINE")),
        upload_dirs=upload_dirs,
        allowed_origins=frozenset(allowed_origins),
        template_data=MappingProxyType(template_data),
        port=port,
        enable_burner_credentials=enable_burner,
        endpoint_url=setting("AWS_S3_ENDPOINT_URL"),
        public_host=setting("S3_PUBLIC_HOST") or DEFAULT_PUBLIC_HOST,
    )


def log_config_summary(config: ServerConfig) -> None:
    logger.info("upload server config: bucket=%s region=%s", config.bucket, config.region)
    if config.auth_enabled:
        logger.info("http authorization enabled")
    if config.deadline is not None:
        logger.info("deadline for uploading set: %s", config.deadline.isoformat())
    if config.enable_burner_credentials:
        logger.info("burner credentials enabled")
    if config.upload_dirs:
        logger.info("limiting uploading to the following paths: %s", ", ".join(config.upload_dirs))
    if config.allowed_origins:
        logger.info(
            "accepting requests from the following origins: %s",
            ", ".join(sorted(config.allowed_origins)),
        )
