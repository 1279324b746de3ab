from datetime import datetime, timezone
from types import MappingProxyType

import pytest

from upload_gate.config import ServerConfig


class StubS3Client:
    def __init__(self, keys=(), page_size=1000):
        self.keys = list(keys)
        self.page_size = page_size
        self.list_calls = []
        self.presign_calls = []

    def list_objects_v2(self, Bucket, Prefix="", ContinuationToken=None):
        self.list_calls.append({"Bucket": Bucket, "Prefix": Prefix})
        matching = [key for key in self.keys if key.startswith(Prefix)]
        start = int(ContinuationToken or 0)
        page = matching[start : start + self.page_size]
        response = {"Contents": [{"Key": key} for key in page]}
        if start + self.page_size < len(matching):
            response["IsTruncated"] = True
            response["NextContinuationToken"] = str(start + self.page_size)
        else:
            response["IsTruncated"] = False
        return response

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.presign_calls.append(
            {"ClientMethod": ClientMethod, "Params": Params, "ExpiresIn": ExpiresIn}
        )
        return (
            f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=stub"
        )


class StubSTSClient:
    def __init__(self):
        self.calls = []

    def get_federation_token(self, Name, Policy, DurationSeconds):
        self.calls.append({"Name": Name, "Policy": Policy, "DurationSeconds": DurationSeconds})
        return {
            "Credentials": {
                "AccessKeyId": "ASIATEMP",
                "SecretAccessKey": "temp-secret",
                "SessionToken": "temp-session",
                "Expiration": datetime(2030, 1, 2, tzinfo=timezone.utc),
            },
            "FederatedUser": {
                "FederatedUserId": f"123456789012:{Name}",
                "Arn": f"arn:aws:sts::123456789012:federated-user/{Name}",
            },
            "PackedPolicySize": 12,
        }


def make_config(**overrides) -> ServerConfig:
    values = dict(
        region="us-east-1",
        bucket="uploads-bucket",
        access_key_id="AKIASERVICE",
        secret_access_key="service-secret",
        template_data=MappingProxyType({"title": "Test uploads", "upload_dirs": []}),
    )
    values.update(overrides)
    return ServerConfig(**values)


@pytest.fixture()
def config():
    return make_config()


@pytest.fixture()
def s3_stub():
    return StubS3Client()
