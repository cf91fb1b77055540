# rentals/services/storage.py
"""
Apartment image storage on the local static directory.

Uploads are validated, downscaled to IMAGE_MAX_DIMENSION on the longest side
and re-encoded (JPEG, or WEBP when the image has transparency) before being
written under STATIC_UPLOAD_DIR/<apartment_id>/.
"""
import logging
import time
import uuid
from io import BytesIO
from pathlib import Path
from typing import List, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from rentals.core.config import Settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP"}
HEIC_CONTENT_TYPES = {"image/heic", "image/heif"}
HEIC_EXTENSIONS = {".heic", ".heif"}


class ImageValidationError(ValueError):
    pass


def validate_image_upload(filename: str, content_type: str | None, size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise ImageValidationError(
            f"Image is too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )

    suffix = Path(filename or "").suffix.lower()
    if content_type in HEIC_CONTENT_TYPES or suffix in HEIC_EXTENSIONS:
        raise ImageValidationError(
            "HEIC images are not supported. Please convert to JPEG or PNG first. "
            "On iPhone, you can export photos as JPEG from the Photos app."
        )

    if content_type not in ALLOWED_CONTENT_TYPES and suffix not in ALLOWED_EXTENSIONS:
        raise ImageValidationError("Invalid file type. Please upload JPEG, PNG, or WebP images.")


def optimize_image(data: bytes, max_dimension: int, quality: int) -> Tuple[bytes, str]:
    """Returns (encoded_bytes, extension_without_dot)."""
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageValidationError(f"Invalid image: {e}")

    if img.format not in ALLOWED_FORMATS:
        raise ImageValidationError(f"Unsupported image format: {img.format}")

    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")

    if img.width > max_dimension or img.height > max_dimension:
        img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    out = BytesIO()
    if img.mode == "RGBA":
        img.save(out, format="WEBP", quality=quality, method=6)
        ext = "webp"
    else:
        img.save(out, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"
    return out.getvalue(), ext


async def prepare_apartment_image(settings: Settings, upload: UploadFile) -> Tuple[bytes, str]:
    """
    Validate and re-encode one upload without touching the disk.
    Returns (encoded_bytes, extension_without_dot).
    """
    data = await upload.read()
    validate_image_upload(upload.filename, upload.content_type, len(data), settings.IMAGE_MAX_BYTES)

    encoded, ext = await run_in_threadpool(
        optimize_image, data, settings.IMAGE_MAX_DIMENSION, settings.IMAGE_QUALITY
    )
    logger.info("prepared image %s (%d -> %d bytes)", upload.filename, len(data), len(encoded))
    return encoded, ext


def write_apartment_image(settings: Settings, apartment_id: int, encoded: bytes, ext: str) -> str:
    """Write an already prepared image and return its public URL."""
    upload_dir = Path(settings.STATIC_UPLOAD_DIR) / str(apartment_id)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{ext}"
    (upload_dir / filename).write_bytes(encoded)

    url = f"{settings.STATIC_URL_PREFIX}/{apartment_id}/{filename}"
    logger.info("stored image %s", url)
    return url


async def save_apartment_images(settings: Settings, uploads: List[UploadFile], apartment_id: int) -> List[str]:
    """
    Store a batch of uploads and return their public URLs.
    Every file is validated first, so a rejected file leaves nothing on disk.
    """
    prepared = [await prepare_apartment_image(settings, upload) for upload in uploads]
    return [write_apartment_image(settings, apartment_id, encoded, ext) for encoded, ext in prepared]


def delete_apartment_image(settings: Settings, url: str) -> bool:
    """
    Remove a stored image by its public URL. Returns False for URLs that do not
    point into the upload directory or files that are already gone.
    """
    prefix = settings.STATIC_URL_PREFIX.rstrip("/") + "/"
    if not url.startswith(prefix):
        return False

    root = Path(settings.STATIC_UPLOAD_DIR).resolve()
    path = (root / url[len(prefix):]).resolve()
    if root not in path.parents:
        raise ImageValidationError("Invalid image URL")

    if not path.exists():
        return False
    path.unlink()
    return True
