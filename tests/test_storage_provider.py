"""
Tests for the image hosts
"""
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from classmate_hub.exceptions import ImageHostError
from classmate_hub.services.storage_provider import (
    LocalDiskImageHost,
    S3ImageHost,
    get_image_host,
)

PNG = b"\x89PNG\r\n\x1a\n"


def client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestLocalDiskImageHost:
    @pytest.fixture
    def host(self, tmp_path):
        return LocalDiskImageHost(base_path=str(tmp_path), base_url="http://api.example.com/")

    def test_upload_generates_name(self, host, tmp_path):
        result = host.upload(PNG, "image/png", "gallery")
        assert result.public_id.startswith("gallery/")
        assert result.public_id.endswith(".png")
        assert result.url == f"http://api.example.com/media/{result.public_id}"
        assert (tmp_path / result.public_id).read_bytes() == PNG

    def test_fixed_name_without_overwrite(self, host):
        host.upload(PNG, "image/png", "gallery", public_id="fixed")
        with pytest.raises(ImageHostError):
            host.upload(PNG, "image/png", "gallery", public_id="fixed")

    def test_overwrite_busts_cache(self, host, tmp_path):
        host.upload(PNG, "image/png", "avatars", public_id="5", overwrite=True)
        result = host.upload(b"GIF89a", "image/gif", "avatars", public_id="5", overwrite=True)
        assert "?v=" in result.url
        assert sorted(p.name for p in (tmp_path / "avatars").iterdir()) == ["5.gif"]

    def test_traversal_is_stripped(self, host, tmp_path):
        result = host.upload(PNG, "image/png", "../gallery", public_id="../../escape")
        assert ".." not in result.public_id
        assert (tmp_path / result.public_id).exists()

    def test_delete(self, host):
        result = host.upload(PNG, "image/png", "gallery")
        assert host.delete(result.public_id) is True
        assert host.delete(result.public_id) is False


class TestS3ImageHost:
    @pytest.fixture
    def s3(self):
        client = MagicMock()
        client.head_object.side_effect = client_error("404")
        return client

    def test_upload(self, s3):
        host = S3ImageHost("photos-bucket", region="eu-west-2", client=s3)
        result = host.upload(PNG, "image/png", "gallery", public_id="abc")

        assert result.public_id == "gallery/abc"
        assert result.url == "https://photos-bucket.s3.eu-west-2.amazonaws.com/gallery/abc"
        kwargs = s3.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "photos-bucket"
        assert kwargs["Key"] == "gallery/abc"
        assert kwargs["ContentType"] == "image/png"

    def test_overwrite_skips_existence_check(self, s3):
        host = S3ImageHost("photos-bucket", public_base_url="https://cdn.example.com/", client=s3)
        result = host.upload(PNG, "image/png", "avatars", public_id="9", overwrite=True)
        s3.head_object.assert_not_called()
        assert result.url.startswith("https://cdn.example.com/avatars/9?v=")

    def test_existing_key_rejected(self, s3):
        s3.head_object.side_effect = None
        host = S3ImageHost("photos-bucket", client=s3)
        with pytest.raises(ImageHostError):
            host.upload(PNG, "image/png", "gallery", public_id="taken")
        s3.put_object.assert_not_called()

    def test_upload_failure(self, s3):
        s3.put_object.side_effect = client_error("AccessDenied", "PutObject")
        with pytest.raises(ImageHostError):
            S3ImageHost("photos-bucket", client=s3).upload(PNG, "image/png", "gallery")

    def test_delete_failure(self, s3):
        s3.delete_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.example.com")
        with pytest.raises(ImageHostError):
            S3ImageHost("photos-bucket", client=s3).delete("gallery/abc")

    def test_delete(self, s3):
        assert S3ImageHost("photos-bucket", client=s3).delete("gallery/abc") is True
        s3.delete_object.assert_called_once_with(Bucket="photos-bucket", Key="gallery/abc")


class TestFactory:
    def test_local(self, tmp_path):
        settings = SimpleNamespace(STORAGE_PROVIDER="local", STORAGE_PATH=str(tmp_path),
                                   API_BASE_URL="http://localhost:8000")
        host = get_image_host(settings)
        assert isinstance(host, LocalDiskImageHost)
        assert Path(host.base_path) == tmp_path

    def test_s3_without_bucket(self):
        settings = SimpleNamespace(STORAGE_PROVIDER="s3", S3_BUCKET_NAME=None)
        with pytest.raises(ValueError):
            get_image_host(settings)
