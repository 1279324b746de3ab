"""
Scope documents restricting a temporary identity to a single object key.

The generated policy only allows putting an object at that key, setting its
ACL (to make it publicly readable) and deleting it again.
"""
from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Dict, Tuple

from .errors import InvalidScopeRequest

POLICY_VERSION = "2012-10-17"
SCOPED_ACTIONS = ("s3:PutObject", "s3:PutObjectAcl", "s3:DeleteObject")

_WILDCARD_TOKENS = ("*", "?", "${")


@dataclass(frozen=True)
class ScopeDocument:
    bucket: str
    key: str
    actions: Tuple[str, ...] = SCOPED_ACTIONS

    @property
    def resource(self) -> str:
        return f"arn:aws:s3:::{self.bucket}/{self.key}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": list(self.actions),
                    "Resource": [self.resource],
                }
            ],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def build_scope_document(bucket: str, key: str) -> ScopeDocument:
    if not bucket:
        raise InvalidScopeRequest("must specify a bucket to scope the policy to")
    if not key:
        raise InvalidScopeRequest("must specify a path to upload to")
    # IAM treats these as wildcards or policy variables inside a resource ARN
    if any(token in key for token in _WILDCARD_TOKENS):
        raise InvalidScopeRequest(f"path {key!r} contains wildcard characters")
    return ScopeDocument(bucket=bucket, key=key)
