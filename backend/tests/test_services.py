import json

import pytest

from upload_gate import services
from upload_gate.errors import BurnerCredentialsDisabled, InvalidDirectory

from conftest import StubS3Client, StubSTSClient, make_config


def test_resolve_path_applies_policy_then_collision_check():
    config = make_config(upload_dirs=("talks",))
    s3 = StubS3Client(keys=["talks/slides.pdf", "talks/slides_1.pdf"])

    path = services.resolve_path(config, s3, "talks", "slides.pdf")

    assert path.bucket == "uploads-bucket"
    assert path.key == "talks/slides_2.pdf"
    assert s3.list_calls == [{"Bucket": "uploads-bucket", "Prefix": "talks/slides"}]


def test_invalid_directory_never_reaches_the_store():
    config = make_config(upload_dirs=("talks",))
    s3 = StubS3Client()

    with pytest.raises(InvalidDirectory):
        services.resolve_path(config, s3, "../etc", "passwd")
    assert s3.list_calls == []


def test_presigned_upload_targets_resolved_key(s3_stub):
    s3_stub.keys = ["photo.jpg"]
    upload = services.create_presigned_upload(make_config(), s3_stub, None, "photo.jpg")

    assert upload.path.key == "photo_1.jpg"
    assert s3_stub.presign_calls[0]["Params"]["Key"] == "photo_1.jpg"


def test_burner_credentials_scope_matches_resolved_key(s3_stub):
    s3_stub.keys = ["notes.txt"]
    sts = StubSTSClient()
    config = make_config(enable_burner_credentials=True)

    issued = services.create_burner_credentials(config, s3_stub, sts, None, "notes.txt")

    assert issued.path.key == "notes_1.txt"
    policy = json.loads(sts.calls[0]["Policy"])
    assert policy["Statement"][0]["Resource"] == ["arn:aws:s3:::uploads-bucket/notes_1.txt"]


def test_burner_credentials_require_feature_flag(s3_stub):
    with pytest.raises(BurnerCredentialsDisabled):
        services.create_burner_credentials(
            make_config(), s3_stub, StubSTSClient(), None, "notes.txt"
        )
    assert s3_stub.list_calls == []
