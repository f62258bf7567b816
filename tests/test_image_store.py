"""
Tests for the image stores.
"""

from unittest.mock import MagicMock

import pytest

from app.services.image_store import (
    GCSImageStore,
    ImageNotFoundError,
    LocalImageStore,
    content_type_for,
    extension_for,
    random_filename,
)


class TestHelpers:
    def test_extension_for_known_types(self):
        assert extension_for("image/jpeg") == "jpg"
        assert extension_for("image/webp") == "webp"
        assert extension_for("application/pdf") == "png"

    def test_random_filename_keeps_extension(self):
        name = random_filename("image/jpeg")

        assert name.endswith(".jpg")
        assert name != random_filename("image/jpeg")

    def test_content_type_for(self):
        assert content_type_for("a.png") == "image/png"
        assert content_type_for("a.unknownext") == "application/octet-stream"


class TestLocalImageStore:
    """Filesystem-backed store."""

    @pytest.mark.asyncio
    async def test_save_and_resolve(self, image_store):
        url = await image_store.save(b"pixels", "photo.png", "image/png")

        assert url == "/api/images/photo.png"
        assert await image_store.exists("photo.png")
        assert await image_store.resolve("photo.png") == b"pixels"

    @pytest.mark.asyncio
    async def test_save_overwrites_same_name(self, image_store):
        await image_store.save(b"first", "same.png")
        await image_store.save(b"second", "same.png")

        assert await image_store.resolve("same.png") == b"second"

    @pytest.mark.asyncio
    async def test_missing_file(self, image_store):
        assert not await image_store.exists("nope.png")
        with pytest.raises(ImageNotFoundError):
            await image_store.resolve("nope.png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["../secret.png", "sub/dir.png", ".hidden", ""])
    async def test_rejects_path_like_names(self, image_store, name):
        assert not await image_store.exists(name)
        with pytest.raises(ImageNotFoundError):
            await image_store.resolve(name)
        with pytest.raises(ImageNotFoundError):
            await image_store.save(b"x", name)

    def test_health(self, tmp_path):
        store = LocalImageStore(str(tmp_path / "not-created"))
        assert store.health() != "ok"

        store.start()
        assert store.health() == "ok"


class TestGCSImageStore:
    """Bucket-backed store against a mocked storage client."""

    @pytest.fixture
    def gcs(self):
        client = MagicMock()
        store = GCSImageStore(bucket_name="test-bucket", client=client)
        store.start()
        return store, client.bucket.return_value

    @pytest.mark.asyncio
    async def test_save_uploads_blob(self, gcs):
        store, bucket = gcs

        url = await store.save(b"pixels", "photo.webp", "image/webp")

        assert url == "/api/images/photo.webp"
        bucket.blob.assert_called_with("photo.webp")
        bucket.blob.return_value.upload_from_string.assert_called_once_with(b"pixels", content_type="image/webp")

    @pytest.mark.asyncio
    async def test_resolve_downloads_blob(self, gcs):
        store, bucket = gcs
        bucket.blob.return_value.exists.return_value = True
        bucket.blob.return_value.download_as_bytes.return_value = b"pixels"

        assert await store.resolve("photo.webp") == b"pixels"

    @pytest.mark.asyncio
    async def test_resolve_missing_blob(self, gcs):
        store, bucket = gcs
        bucket.blob.return_value.exists.return_value = False

        with pytest.raises(ImageNotFoundError):
            await store.resolve("photo.webp")

    def test_health_reports_missing_bucket(self, gcs):
        store, bucket = gcs
        bucket.exists.return_value = False

        assert store.health() == "error: bucket not found"
