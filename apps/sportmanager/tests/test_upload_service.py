"""
Tests for upload_service.
Image validation, storage under UPLOADS_DIR and deletion.
"""
from io import BytesIO

import pytest
from PIL import Image

from sportmanager.services import upload_service


def _png_bytes(size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setenv("UPLOADS_DIR", str(target))
    return target


class TestValidateImage:
    def test_valid_png(self):
        assert upload_service.validate_image(_png_bytes(), "image/png") == (True, "")

    def test_empty_file(self):
        is_valid, error = upload_service.validate_image(b"", "image/png")
        assert not is_valid
        assert "empty" in error

    def test_too_large(self):
        payload = b"0" * (upload_service.MAX_FILE_SIZE_BYTES + 1)
        is_valid, error = upload_service.validate_image(payload, "image/png")
        assert not is_valid
        assert "5MB" in error

    def test_unsupported_type(self):
        is_valid, error = upload_service.validate_image(_png_bytes(), "application/pdf")
        assert not is_valid
        assert "Only image files are allowed" in error

    def test_corrupted_image(self):
        is_valid, error = upload_service.validate_image(b"definitely not an image", "image/jpeg")
        assert not is_valid
        assert "Invalid or corrupted" in error


class TestSaveAndDelete:
    def test_save_image_writes_file(self, uploads_dir):
        public_path = upload_service.save_image(_png_bytes(), "image/png", "player-1")

        assert public_path.startswith("/uploads/player-1-")
        assert public_path.endswith(".png")
        assert (uploads_dir / public_path.rsplit("/", 1)[1]).exists()

    def test_save_image_rejects_invalid(self, uploads_dir):
        with pytest.raises(ValueError):
            upload_service.save_image(b"junk", "image/png", "logo")

    def test_delete_image(self, uploads_dir):
        public_path = upload_service.save_image(_png_bytes(), "image/png", "logo")
        upload_service.delete_image(public_path)
        assert not (uploads_dir / public_path.rsplit("/", 1)[1]).exists()

    def test_delete_ignores_foreign_and_missing_paths(self, uploads_dir):
        upload_service.delete_image("https://cdn.example.com/logo.png")
        upload_service.delete_image("/uploads/missing.png")
        upload_service.delete_image("")
