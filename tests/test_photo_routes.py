"""
Tests for the photo gallery routes
"""
from pathlib import Path
from unittest.mock import patch

import pytest

from classmate_hub.db import Photo, UserRole
from classmate_hub.exceptions import ImageHostError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 128


@pytest.fixture
def make_photo(database):
    """Store a photo record directly, returning its id"""
    def _make(uploader, public_id="gallery/sample.png", title=None, **extra):
        with database.session() as session:
            photo = Photo(
                uploaded_by_id=uploader.id,
                url=f"http://testserver/media/{public_id}",
                public_id=public_id,
                title=title,
                **extra,
            )
            session.add(photo)
            session.commit()
            return photo.id

    return _make


def upload_and_create(client, headers, title="Graduation day"):
    upload = client.post(
        "/api/upload",
        data={"type": "gallery"},
        files={"file": ("photo.png", PNG_BYTES, "image/png")},
        headers=headers,
    )
    assert upload.status_code == 200, upload.text
    stored = upload.json()
    response = client.post("/api/photos", json={
        "url": stored["url"],
        "public_id": stored["public_id"],
        "title": title,
        "location": "London",
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["photo"]


class TestCreatePhoto:
    def test_create_after_upload(self, client, test_user, auth_headers):
        photo = upload_and_create(client, auth_headers(test_user))
        assert photo["title"] == "Graduation day"
        assert photo["uploaded_by"]["id"] == test_user.id
        assert photo["like_count"] == 0
        assert photo["liked_by_me"] is False
        assert photo["is_public"] is True
        assert photo["public_id"].startswith("gallery/")

    def test_rejects_non_gallery_reference(self, client, test_user, auth_headers):
        response = client.post("/api/photos", json={
            "url": "http://testserver/media/avatars/1.png",
            "public_id": "avatars/1.png",
        }, headers=auth_headers(test_user))
        assert response.status_code == 422
        assert response.json()["details"]["fields"][0]["field"] == "public_id"

    def test_rejects_long_title(self, client, test_user, auth_headers):
        response = client.post("/api/photos", json={
            "url": "http://testserver/media/gallery/a.png",
            "public_id": "gallery/a.png",
            "title": "x" * 101,
        }, headers=auth_headers(test_user))
        assert response.status_code == 422

    def test_requires_session(self, client):
        response = client.post("/api/photos", json={"url": "u", "public_id": "gallery/a.png"})
        assert response.status_code == 401


class TestListPhotos:
    def test_newest_first_with_like_state(self, client, make_user, make_photo, auth_headers):
        owner = make_user(name="Owner")
        viewer = make_user(name="Viewer")
        first = make_photo(owner, public_id="gallery/1.png", title="First")
        second = make_photo(owner, public_id="gallery/2.png", title="Second")
        client.post(f"/api/photos/{first}/like", headers=auth_headers(viewer))

        response = client.get("/api/photos", headers=auth_headers(viewer))
        assert response.status_code == 200
        photos = response.json()["photos"]
        assert [p["id"] for p in photos] == [second, first]
        assert photos[1]["like_count"] == 1
        assert photos[1]["liked_by_me"] is True
        assert photos[0]["liked_by_me"] is False
        assert response.json()["pagination"]["limit"] == 20

    def test_filter_by_uploader_and_search(self, client, make_user, make_photo, auth_headers):
        alice = make_user(name="Alice")
        bob = make_user(name="Bob")
        make_photo(alice, public_id="gallery/a.png", title="Campus tour")
        make_photo(bob, public_id="gallery/b.png", title="Dinner")
        headers = auth_headers(alice)

        by_bob = client.get("/api/photos", params={"user_id": bob.id}, headers=headers).json()
        assert [p["title"] for p in by_bob["photos"]] == ["Dinner"]

        found = client.get("/api/photos", params={"search": "campus"}, headers=headers).json()
        assert [p["title"] for p in found["photos"]] == ["Campus tour"]


class TestLikes:
    def test_like_then_unlike_restores_likes(self, client, make_user, make_photo, auth_headers):
        owner = make_user(name="Owner")
        fan = make_user(name="Fan")
        other_fan = make_user(name="Other Fan")
        photo_id = make_photo(owner)
        client.post(f"/api/photos/{photo_id}/like", headers=auth_headers(other_fan))

        before = client.get(f"/api/photos/{photo_id}", headers=auth_headers(fan)).json()["photo"]

        liked = client.post(f"/api/photos/{photo_id}/like", headers=auth_headers(fan)).json()
        assert liked["liked"] is True
        assert liked["photo"]["like_count"] == 2
        assert {u["id"] for u in liked["photo"]["liked_by"]} == {fan.id, other_fan.id}

        unliked = client.post(f"/api/photos/{photo_id}/like", headers=auth_headers(fan)).json()
        assert unliked["liked"] is False
        assert unliked["photo"]["liked_by"] == before["liked_by"]
        assert unliked["photo"]["like_count"] == before["like_count"] == 1

    def test_like_missing_photo(self, client, test_user, auth_headers):
        response = client.post("/api/photos/9999/like", headers=auth_headers(test_user))
        assert response.status_code == 404
        assert response.json()["message"] == "Photo not found."


class TestTags:
    def test_uploader_sets_tags(self, client, make_user, make_photo, auth_headers):
        owner = make_user(name="Owner")
        zoe = make_user(name="Zoe")
        adam = make_user(name="Adam")
        photo_id = make_photo(owner)

        response = client.put(f"/api/photos/{photo_id}/tags", json={"user_ids": [zoe.id, adam.id]},
                              headers=auth_headers(owner))
        assert response.status_code == 200
        assert [u["name"] for u in response.json()["photo"]["tagged_users"]] == ["Adam", "Zoe"]

        cleared = client.put(f"/api/photos/{photo_id}/tags", json={"user_ids": []}, headers=auth_headers(owner))
        assert cleared.json()["photo"]["tagged_users"] == []

    def test_unknown_user_ids(self, client, make_user, make_photo, auth_headers):
        owner = make_user()
        photo_id = make_photo(owner)
        response = client.put(f"/api/photos/{photo_id}/tags", json={"user_ids": [4242]},
                              headers=auth_headers(owner))
        assert response.status_code == 422
        assert response.json()["details"]["fields"][0]["field"] == "user_ids"

    def test_other_student_cannot_tag(self, client, make_user, make_photo, auth_headers):
        owner = make_user()
        stranger = make_user()
        photo_id = make_photo(owner)
        response = client.put(f"/api/photos/{photo_id}/tags", json={"user_ids": [stranger.id]},
                              headers=auth_headers(stranger))
        assert response.status_code == 403


class TestPhotoDetail:
    def test_detail_lists_uploader_tags_and_likers(self, client, make_user, make_photo, auth_headers):
        owner = make_user(name="Owner")
        friend = make_user(name="Friend")
        photo_id = make_photo(owner, title="Reunion", location="London")
        client.put(f"/api/photos/{photo_id}/tags", json={"user_ids": [friend.id]}, headers=auth_headers(owner))
        client.post(f"/api/photos/{photo_id}/like", headers=auth_headers(friend))

        photo = client.get(f"/api/photos/{photo_id}", headers=auth_headers(friend)).json()["photo"]
        assert photo["title"] == "Reunion"
        assert photo["uploaded_by"]["id"] == owner.id
        assert [u["id"] for u in photo["tagged_users"]] == [friend.id]
        assert [u["id"] for u in photo["liked_by"]] == [friend.id]
        assert photo["liked_by_me"] is True

    def test_missing_photo(self, client, test_user, auth_headers):
        response = client.get("/api/photos/4040", headers=auth_headers(test_user))
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestDeletePhoto:
    def test_uploader_deletes_photo_and_asset(self, client, test_user, auth_headers, image_host):
        headers = auth_headers(test_user)
        photo = upload_and_create(client, headers)
        asset = Path(image_host.base_path) / photo["public_id"]
        assert asset.exists()
        client.post(f"/api/photos/{photo['id']}/like", headers=headers)

        response = client.delete(f"/api/photos/{photo['id']}", headers=headers)
        assert response.status_code == 200
        assert not asset.exists()
        assert client.get(f"/api/photos/{photo['id']}", headers=headers).status_code == 404

    def test_other_student_forbidden(self, client, make_user, make_photo, auth_headers):
        owner = make_user()
        stranger = make_user()
        photo_id = make_photo(owner)
        response = client.delete(f"/api/photos/{photo_id}", headers=auth_headers(stranger))
        assert response.status_code == 403
        assert client.get(f"/api/photos/{photo_id}", headers=auth_headers(owner)).status_code == 200

    def test_coordinator_may_delete(self, client, make_user, make_photo, auth_headers):
        owner = make_user()
        coordinator = make_user(role=UserRole.COORDINATOR)
        photo_id = make_photo(owner)
        response = client.delete(f"/api/photos/{photo_id}", headers=auth_headers(coordinator))
        assert response.status_code == 200

    def test_image_host_failure_keeps_record(self, client, test_user, make_photo, auth_headers, image_host):
        photo_id = make_photo(test_user)
        headers = auth_headers(test_user)
        with patch.object(image_host, "delete", side_effect=ImageHostError()):
            response = client.delete(f"/api/photos/{photo_id}", headers=headers)
        assert response.status_code == 502
        assert response.json()["code"] == "IMAGE_HOST_FAILED"
        assert client.get(f"/api/photos/{photo_id}", headers=headers).status_code == 200

    def test_missing_asset_still_deletes_record(self, client, test_user, make_photo, auth_headers):
        photo_id = make_photo(test_user, public_id="gallery/never-stored.png")
        headers = auth_headers(test_user)
        assert client.delete(f"/api/photos/{photo_id}", headers=headers).status_code == 200
        assert client.get(f"/api/photos/{photo_id}", headers=headers).status_code == 404
