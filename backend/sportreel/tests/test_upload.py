import base64
from unittest.mock import patch
from botocore.exceptions import EndpointConnectionError
from sportreel.models.video import Video


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def upload_form(**overrides):
    form = {
        "title": "Amazing Goal!!",
        "description": "Scored this in the final minute",
        "sport": "Football",
    }
    form.update(overrides)
    return form


def test_upload_video_success(client, db, signup, storage, png_bytes, video_bytes):
    """Test successful upload with a thumbnail file."""
    token, user = signup()

    response = client.post(
        "/videos",
        data=upload_form(),
        files={
            "video": ("goal.mp4", video_bytes, "video/mp4"),
            "thumbnail": ("thumb.png", png_bytes, "image/png"),
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["sport"] == "Football"
    assert data["views"] == 0
    assert data["likes"] == 0
    assert data["uploaderId"] == user["id"]
    assert data["videoUrl"].startswith(f"https://media.test/users/{user['id']}/videos/")
    assert data["videoUrl"].endswith("/goal.mp4")
    assert data["thumbnailUrl"].endswith("/thumbnail.png")
    assert storage.s3_client.upload_fileobj.call_count == 2

    assert db.query(Video).count() == 1


def test_upload_with_generated_thumbnail(client, signup, storage, png_bytes, video_bytes):
    token, _ = signup()
    data_uri = f"data:image/png;base64,{base64.b64encode(png_bytes).decode('ascii')}"

    response = client.post(
        "/videos",
        data=upload_form(thumbnail_data_uri=data_uri),
        files={"video": ("goal.mp4", video_bytes, "video/mp4")},
        headers=auth_headers(token),
    )

    assert response.status_code == 201, response.text
    assert response.json()["thumbnailUrl"].endswith("/thumbnail.png")


def test_upload_without_thumbnail_makes_no_calls(client, signup, storage, video_bytes):
    token, _ = signup()

    response = client.post(
        "/videos",
        data=upload_form(),
        files={"video": ("goal.mp4", video_bytes, "video/mp4")},
        headers=auth_headers(token),
    )

    assert response.status_code == 422
    assert "thumbnail" in response.json()["errors"]
    storage.s3_client.upload_fileobj.assert_not_called()


def test_upload_with_both_thumbnail_sources_rejected(client, signup, storage, png_bytes, video_bytes):
    token, _ = signup()
    data_uri = f"data:image/png;base64,{base64.b64encode(png_bytes).decode('ascii')}"

    response = client.post(
        "/videos",
        data=upload_form(thumbnail_data_uri=data_uri),
        files={
            "video": ("goal.mp4", video_bytes, "video/mp4"),
            "thumbnail": ("thumb.png", png_bytes, "image/png"),
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 422
    assert "not both" in response.json()["errors"]["thumbnail"]
    storage.s3_client.upload_fileobj.assert_not_called()


def test_upload_field_errors(client, signup, storage, png_bytes, video_bytes):
    token, _ = signup()

    response = client.post(
        "/videos",
        data=upload_form(title="Hi", description="Too short", sport="Cricket"),
        files={
            "video": ("goal.avi", video_bytes, "video/x-msvideo"),
            "thumbnail": ("thumb.png", png_bytes, "image/png"),
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"title", "description", "sport", "video"}
    storage.s3_client.upload_fileobj.assert_not_called()


def test_upload_video_too_large(client, signup, storage, png_bytes, video_bytes):
    token, _ = signup()

    with patch("sportreel.core.config.settings.max_video_size", 1024):
        response = client.post(
            "/videos",
            data=upload_form(),
            files={
                "video": ("goal.mp4", video_bytes, "video/mp4"),
                "thumbnail": ("thumb.png", png_bytes, "image/png"),
            },
            headers=auth_headers(token),
        )

    assert response.status_code == 422
    assert "Max file size" in response.json()["errors"]["video"]


def test_upload_requires_authentication(client, storage, png_bytes, video_bytes):
    response = client.post(
        "/videos",
        data=upload_form(),
        files={
            "video": ("goal.mp4", video_bytes, "video/mp4"),
            "thumbnail": ("thumb.png", png_bytes, "image/png"),
        },
    )

    assert response.status_code == 401
    storage.s3_client.upload_fileobj.assert_not_called()


def test_storage_failure_reported(client, db, signup, storage, png_bytes, video_bytes):
    token, _ = signup()
    storage.s3_client.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")

    response = client.post(
        "/videos",
        data=upload_form(),
        files={
            "video": ("goal.mp4", video_bytes, "video/mp4"),
            "thumbnail": ("thumb.png", png_bytes, "image/png"),
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 502
    assert "failed" in response.json()["detail"]
    assert db.query(Video).count() == 0

    # The service keeps answering after a failed upload
    assert client.get("/health").json() == {"status": "ok"}
