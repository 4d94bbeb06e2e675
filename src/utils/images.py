"""Pillow helpers shared by the image tiers and image de-duplication."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError


def is_decodable_image(data: bytes) -> bool:
    """Return ``True`` if Pillow can identify and fully decode *data*."""
    if not data:
        return False
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError):
        return False
    return True


def open_rgb(data: bytes) -> Image.Image:
    """Decode *data* into a detached RGB image.

    Raises
    ------
    PIL.UnidentifiedImageError
        If the bytes are not an image Pillow understands.
    """
    with Image.open(io.BytesIO(data)) as img:
        return img.convert("RGB")


def detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes.

    PNG starts with ``89 50 4E 47``, GIF with ``GIF8``, WEBP with
    ``RIFF....WEBP`` and JPEG with ``FF D8``.  Anything else is reported as
    JPEG, the most common embedded format.
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"GIF8":
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
