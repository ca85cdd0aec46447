"""
Tests for the image upload route
"""
from pathlib import Path

from classmate_hub.upload_routes import MAX_UPLOAD_BYTES

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestUploadValidation:
    """Rejected uploads"""

    def test_requires_session(self, client):
        response = client.post("/api/upload", data={"type": "gallery"},
                               files={"file": ("a.png", PNG_BYTES, "image/png")})
        assert response.status_code == 401

    def test_missing_file(self, client, test_user, auth_headers):
        response = client.post("/api/upload", data={"type": "gallery"}, headers=auth_headers(test_user))
        assert response.status_code == 400
        assert response.json()["code"] == "UPLOAD_NO_FILE"

    def test_wrong_content_type(self, client, test_user, auth_headers):
        response = client.post(
            "/api/upload",
            data={"type": "gallery"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers(test_user),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "UPLOAD_INVALID_TYPE"

    def test_too_large(self, client, test_user, auth_headers):
        response = client.post(
            "/api/upload",
            data={"type": "gallery"},
            files={"file": ("big.jpg", b"\xff" * (MAX_UPLOAD_BYTES + 1), "image/jpeg")},
            headers=auth_headers(test_user),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "UPLOAD_SIZE_EXCEEDED"

    def test_unknown_upload_type(self, client, test_user, auth_headers):
        response = client.post(
            "/api/upload",
            data={"type": "banner"},
            files={"file": ("a.png", PNG_BYTES, "image/png")},
            headers=auth_headers(test_user),
        )
        assert response.status_code == 422
        assert response.json()["details"]["fields"][0]["field"] == "type"


class TestGalleryUpload:
    def test_stores_under_gallery(self, client, test_user, auth_headers, image_host):
        response = client.post(
            "/api/upload",
            data={"type": "gallery"},
            files={"file": ("trip.webp", PNG_BYTES, "image/webp")},
            headers=auth_headers(test_user),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["public_id"].startswith("gallery/")
        assert body["public_id"].endswith(".webp")
        assert body["thumbnail_url"] is None
        assert "access_token" not in body
        assert (Path(image_host.base_path) / body["public_id"]).read_bytes() == PNG_BYTES

    def test_served_under_media(self, client, test_user, auth_headers):
        body = client.post(
            "/api/upload",
            data={"type": "gallery"},
            files={"file": ("a.png", PNG_BYTES, "image/png")},
            headers=auth_headers(test_user),
        ).json()
        served = client.get(f"/media/{body['public_id']}")
        assert served.status_code == 200
        assert served.content == PNG_BYTES


class TestAvatarUpload:
    def test_replaces_avatar_and_refreshes_session(self, client, test_user, auth_headers, fetch_user, image_host):
        response = client.post(
            "/api/upload",
            data={"type": "avatar"},
            files={"file": ("me.png", PNG_BYTES, "image/png")},
            headers=auth_headers(test_user),
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["public_id"] == f"avatars/{test_user.id}.png"
        assert body["message"] == "Avatar uploaded successfully!"
        assert fetch_user(test_user.email).avatar == body["url"]

        session = client.get("/api/auth/session", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert session.json()["avatar"] == body["url"]

        # A second avatar in another format replaces the first file
        again = client.post(
            "/api/upload",
            data={"type": "avatar"},
            files={"file": ("me.jpg", b"\xff\xd8\xff" + b"\x00" * 16, "image/jpeg")},
            headers=auth_headers(test_user),
        )
        assert again.status_code == 200
        avatars = sorted(p.name for p in (Path(image_host.base_path) / "avatars").iterdir())
        assert avatars == [f"{test_user.id}.jpg"]
