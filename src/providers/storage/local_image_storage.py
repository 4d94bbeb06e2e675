"""Filesystem storage for extracted images."""

from __future__ import annotations

import asyncio
import hashlib
import re
from pathlib import Path

import structlog

from src.interfaces.image_storage_provider import IImageStorageProvider
from src.utils.images import detect_media_type

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_EXTENSIONS = {
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/jpeg": ".jpg",
}


class LocalImageStorageProvider(IImageStorageProvider):
    """Writes images under *root* as ``<name>-<sha256[:12]><ext>``.

    The digest suffix makes names content-addressed, so re-ingesting a
    document rewrites the same files instead of accumulating copies.
    """

    def __init__(self, root: str | Path = "./data/images") -> None:
        self._root = Path(root)

    async def save(self, image_bytes: bytes, name: str) -> str:
        stem = _UNSAFE.sub("_", Path(name).stem).strip("._") or "image"
        digest = hashlib.sha256(image_bytes).hexdigest()[:12]
        extension = _EXTENSIONS.get(detect_media_type(image_bytes), ".bin")
        relative = f"{stem[:64]}-{digest}{extension}"
        await asyncio.to_thread(self._write, self._root / relative, image_bytes)
        logger.debug("image_stored", path=relative, bytes=len(image_bytes))
        return relative

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def get_provider_name(self) -> str:
        return "local"
