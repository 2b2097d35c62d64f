from unittest.mock import patch
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from sportreel.core.errors import StorageError, UploadError


def test_upload_reports_cumulative_progress(storage):
    def fake_upload(fileobj, bucket, key, ExtraArgs=None, Callback=None):
        for _ in range(4):
            Callback(250)

    storage.s3_client.upload_fileobj.side_effect = fake_upload
    seen = []

    url = storage.upload_bytes(b"x" * 1000, "users/u1/videos/1-ab/clip.mp4", "video/mp4", seen.append)

    assert seen == [25.0, 50.0, 75.0, 100.0]
    assert url == "https://media.test/users/u1/videos/1-ab/clip.mp4"


def test_upload_without_callbacks_still_finishes_at_100(storage):
    seen = []

    storage.upload_bytes(b"", "users/u1/videos/1-ab/thumbnail.png", "image/png", seen.append)

    assert seen == [100.0]


def test_upload_sends_content_type(storage):
    storage.upload_bytes(b"data", "users/u1/videos/1-ab/thumbnail.png", "image/png")

    _, kwargs = storage.s3_client.upload_fileobj.call_args
    assert kwargs["ExtraArgs"] == {"ContentType": "image/png"}


def test_upload_error_is_wrapped(storage):
    storage.s3_client.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")

    with pytest.raises(UploadError) as exc_info:
        storage.upload_bytes(b"data", "users/u1/videos/1-ab/clip.mp4", "video/mp4")

    assert isinstance(exc_info.value, StorageError)
    assert exc_info.value.status_code == 502


def test_public_url_round_trip(storage):
    key = "users/u1/videos/1-ab/my clip.mp4"

    url = storage.public_url(key)

    assert url == "https://media.test/users/u1/videos/1-ab/my%20clip.mp4"
    assert storage.key_from_url(url) == key


def test_key_from_foreign_url(storage):
    with pytest.raises(StorageError):
        storage.key_from_url("https://elsewhere.test/users/u1/videos/1-ab/clip.mp4")


def test_default_public_base_url(storage):
    with patch("sportreel.core.config.settings.s3_public_base_url", ""), \
         patch("sportreel.core.config.settings.aws_region", "us-east-2"):
        storage.bucket = "sportreel-media"
        assert storage.public_base_url == "https://sportreel-media.s3.us-east-2.amazonaws.com"


def test_delete_error_is_wrapped(storage):
    storage.s3_client.delete_object.side_effect = ClientError(
        {"Error": {"Code": "NoSuchBucket", "Message": "gone"}}, "DeleteObject"
    )

    with pytest.raises(StorageError):
        storage.delete_object("users/u1/videos/1-ab/clip.mp4")
