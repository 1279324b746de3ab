"""
Collision avoidance for upload keys.

The bucket is listed once for every key sharing the candidate's base name and
numeric suffixes are appended until a free key is found. The listing is a
point-in-time snapshot: two concurrent requests can still be handed the same
key, and the store's last-writer-wins semantics decide the outcome.
"""
from __future__ import annotations

import logging
import posixpath
import re
from typing import Any, Iterable, List, Set, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from .errors import StorageListError

logger = logging.getLogger(__name__)

_NUMERIC_SUFFIX_RE = re.compile(r"_\d+$")


def split_key(key: str) -> Tuple[str, str]:
    """
    Split ``key`` into ``(base, extension)``.

    The base has any trailing ``_<n>`` suffix removed, so ``photo_3.jpg`` and
    ``photo.jpg`` share the base ``photo``.
    """
    root, ext = posixpath.splitext(key)
    return _NUMERIC_SUFFIX_RE.sub("", root), ext


def list_keys(client: Any, bucket: str, prefix: str) -> List[str]:
    keys: List[str] = []
    continuation_token = None
    try:
        while True:
            if continuation_token:
                response = client.list_objects_v2(
                    Bucket=bucket, Prefix=prefix, ContinuationToken=continuation_token
                )
            else:
                response = client.list_objects_v2(Bucket=bucket, Prefix=prefix)

            keys.extend(obj["Key"] for obj in response.get("Contents", []))

            if response.get("IsTruncated"):
                continuation_token = response.get("NextContinuationToken")
            else:
                break
    except (BotoCoreError, ClientError) as exc:
        logger.error("Listing %s/%s* failed: %s", bucket, prefix, exc)
        raise StorageListError(str(exc)) from exc
    return keys


def next_free_key(key: str, taken: Iterable[str]) -> str:
    """
    Return ``key`` or the first ``<base>_<k><ext>`` (k = 1, 2, ...) not in
    ``taken``.
    """
    existing: Set[str] = set(taken)
    if key not in existing:
        return key
    base, ext = split_key(key)
    counter = 1
    candidate = f"{base}_{counter}{ext}"
    while candidate in existing:
        counter += 1
        candidate = f"{base}_{counter}{ext}"
    return candidate


def find_unused_key(client: Any, bucket: str, key: str) -> str:
    base, _ = split_key(key)
    existing = list_keys(client, bucket, base)
    resolved = next_free_key(key, existing)
    if resolved != key:
        logger.info("Key %s already taken, using %s", key, resolved)
    return resolved
