"""
Upload service for validating and storing team logos and member photos.

Images are checked for size and type, opened with Pillow to make sure they
are real images, and written to UPLOADS_DIR under a random file name.
"""

import logging
import os
import uuid
from io import BytesIO
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv
from PIL import Image

load_dotenv()

logger = logging.getLogger(__name__)

# Validation constants
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024  # 5MB
MAX_IMAGE_PIXELS = 25_000_000
ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS

UPLOADS_URL_PREFIX = "/uploads"


def get_uploads_dir() -> Path:
    """Directory uploaded images are written to (UPLOADS_DIR, default <package>/uploads)."""
    default_dir = Path(__file__).resolve().parent.parent / "uploads"
    return Path(os.getenv("UPLOADS_DIR", str(default_dir)))


def validate_image(file_bytes: bytes, content_type: str) -> Tuple[bool, str]:
    """
    Validate an uploaded image.

    Args:
        file_bytes: Raw uploaded file bytes
        content_type: MIME type from the upload

    Returns:
        Tuple of (is_valid, error_message). error_message is empty string if valid.
    """
    if not file_bytes:
        return False, "Uploaded file is empty"

    if len(file_bytes) > MAX_FILE_SIZE_BYTES:
        return False, f"File size exceeds maximum of {MAX_FILE_SIZE_BYTES // (1024 * 1024)}MB"

    if not content_type or content_type not in ALLOWED_CONTENT_TYPES:
        return False, f"Invalid file type '{content_type}'. Only image files are allowed (JPEG, PNG, GIF, WebP)"

    try:
        img = Image.open(BytesIO(file_bytes))
        img.verify()
    except Image.DecompressionBombError:
        return False, "Image dimensions too large"
    except Exception as e:
        return False, f"Invalid or corrupted image file: {str(e)}"

    return True, ""


def save_image(file_bytes: bytes, content_type: str, prefix: str) -> str:
    """
    Validate and store an image.

    Args:
        file_bytes: Raw image bytes
        content_type: MIME type from the upload
        prefix: File name prefix ("logo", "player", "coach")

    Returns:
        Public path of the stored file, e.g. "/uploads/player-<hex>.png"

    Raises:
        ValueError: If the image fails validation
    """
    is_valid, error = validate_image(file_bytes, content_type)
    if not is_valid:
        raise ValueError(error)

    uploads_dir = get_uploads_dir()
    uploads_dir.mkdir(parents=True, exist_ok=True)

    filename = f"{prefix}-{uuid.uuid4().hex}{ALLOWED_CONTENT_TYPES[content_type]}"
    (uploads_dir / filename).write_bytes(file_bytes)
    logger.info(f"Stored upload {filename} ({len(file_bytes)} bytes)")
    return f"{UPLOADS_URL_PREFIX}/{filename}"


def delete_image(public_path: str) -> None:
    """Remove a previously stored image; unknown or foreign paths are ignored."""
    if not public_path or not public_path.startswith(f"{UPLOADS_URL_PREFIX}/"):
        return
    target = get_uploads_dir() / Path(public_path).name
    try:
        target.unlink()
    except FileNotFoundError:
        logger.debug(f"Upload {target} already removed")
