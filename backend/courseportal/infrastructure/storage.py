"""Local Image Storage — saves course images under the upload dir, served at /uploads.

Invariants:
    - Only raster image types in _EXTENSIONS_BY_TYPE are accepted (no SVG: it can carry script)
    - Files larger than max_bytes are rejected before anything is written
    - Stored names are random (uuid4 hex) + the extension mapped from the content type:
      client filenames never reach the filesystem path
    - delete() only removes files that live inside the upload dir

Design Decisions:
    - Blocking file IO pushed to a thread (asyncio.to_thread): keeps the event loop free
"""

import asyncio
import logging
import uuid
from pathlib import Path

from courseportal.core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
_EXTENSIONS_BY_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/avif": ".avif",
}


class LocalImageStorage:
    """Stores uploaded images in a local directory."""

    def __init__(self, upload_dir: str, max_bytes: int):
        self.root = Path(upload_dir).resolve()
        self.max_bytes = max_bytes

    def validate(self, content_type: str | None, size: int) -> str:
        """Check type and size. Returns the extension for the stored file."""
        ext = _EXTENSIONS_BY_TYPE.get(_base_type(content_type))
        if ext is None:
            raise ValidationError(
                "Only image uploads are allowed", "INVALID_FILE_TYPE",
                details={"content_type": content_type},
            )
        if size == 0:
            raise ValidationError("Uploaded file is empty", "EMPTY_FILE")
        if size > self.max_bytes:
            raise ValidationError(
                "File size exceeds the maximum allowed", "FILE_TOO_LARGE",
                details={"size": size, "max_bytes": self.max_bytes},
            )
        return ext

    async def save(self, content_type: str | None, data: bytes) -> str:
        """Validate and write the image. Returns its public URL path."""
        ext = self.validate(content_type, len(data))
        name = f"{uuid.uuid4().hex}{ext}"
        path = self.root / name
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"Image write failed: {e}")
            raise StorageError("Could not store uploaded file")
        logger.info(f"Stored image {name} ({len(data)} bytes)")
        return f"{PUBLIC_PREFIX}/{name}"

    async def delete(self, url: str | None) -> bool:
        """Remove the file behind a /uploads URL. Returns True if a file was removed."""
        path = self.path_for(url)
        if path is None:
            return False
        try:
            removed = await asyncio.to_thread(self._unlink, path)
        except OSError as e:
            logger.error(f"Image delete failed: {e}")
            raise StorageError("Could not delete stored file")
        return removed

    def path_for(self, url: str | None) -> Path | None:
        if not url or not url.startswith(PUBLIC_PREFIX + "/"):
            return None
        candidate = (self.root / url[len(PUBLIC_PREFIX) + 1:]).resolve()
        if candidate.parent != self.root:
            return None
        return candidate

    def _write(self, path: Path, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    @staticmethod
    def _unlink(path: Path) -> bool:
        if not path.exists():
            return False
        path.unlink()
        return True


def _base_type(content_type: str | None) -> str:
    # "image/png; charset=binary" -> "image/png"
    return (content_type or "").split(";", 1)[0].strip().lower()
