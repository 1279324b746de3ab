"""
Upload path policy: checks the requested directory against the configured
whitelist and composes the object key.
"""
from __future__ import annotations

from dataclasses import dataclass
import posixpath
from typing import Optional

from .config import ServerConfig
from .errors import DirectoryUploadsUnsupported, InvalidDirectory, InvalidUploadRequest


@dataclass(frozen=True)
class ResolvedPath:
    bucket: str
    key: str

    @property
    def resource(self) -> str:
        return f"{self.bucket}/{self.key}"

    @property
    def filename(self) -> str:
        return posixpath.basename(self.key)


def trim_separators(value: Optional[str]) -> str:
    return (value or "").strip("/")


def resolve_upload_path(
    config: ServerConfig, directory: Optional[str], object_name: Optional[str]
) -> str:
    """
    Return the object key for ``object_name`` inside ``directory``.

    With a whitelist every key must live in one of its directories; with an
    empty whitelist no directory is accepted at all. The object name itself
    is passed through untouched.
    """
    if not object_name:
        raise InvalidUploadRequest("object_name is required")

    requested = trim_separators(directory)
    if config.upload_dirs:
        for allowed in config.upload_dirs:
            if requested == trim_separators(allowed):
                return f"{requested}/{object_name}"
        raise InvalidDirectory(requested)

    if requested:
        raise DirectoryUploadsUnsupported()
    return object_name
