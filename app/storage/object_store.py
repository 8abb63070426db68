"""
Object store - public buckets for listing images and avatars.
Challenge: Binary uploads off the event loop, stable public URLs.
Design: Buckets are directories under storage_root, served by StaticFiles at /storage.
"""

import asyncio
import logging
import secrets
import time
from pathlib import Path, PurePosixPath

from app.config import get_settings
from app.core.errors import UploadError, ValidationError

logger = logging.getLogger(__name__)

BUCKETS = ("items", "avatars")


def object_path(user_id: str, filename: str) -> str:
    """Per-user path with a collision-resistant name, keeping the original extension."""
    ext = PurePosixPath(filename).suffix.lstrip(".").lower() or "bin"
    return f"{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


class ObjectStore:
    def __init__(self, root: str | Path, public_url: str):
        self.root = Path(root)
        self.public_base = public_url.rstrip("/")

    def _target(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise ValidationError(f"Unknown bucket: {bucket}")
        rel = PurePosixPath(path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValidationError("Invalid object path")
        return self.root / bucket / rel

    async def upload(self, bucket: str, path: str, data: bytes) -> None:
        """Store bytes at bucket/path. Existing objects are never overwritten."""
        target = self._target(bucket, path)
        if not data:
            raise UploadError("File is empty")
        try:
            await asyncio.to_thread(self._write, target, data)
        except FileExistsError:
            raise UploadError("An object already exists at this path")
        except OSError as e:
            logger.error("Upload to %s/%s failed: %s", bucket, path, e)
            raise UploadError("Failed to upload file. Please try again.") from e

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "xb") as fh:
            fh.write(data)

    def public_url(self, bucket: str, path: str) -> str:
        self._target(bucket, path)
        return f"{self.public_base}/{bucket}/{path}"


_store: ObjectStore | None = None


def get_object_store() -> ObjectStore:
    """Shared object store. Used as FastAPI dependency."""
    global _store
    if _store is None:
        settings = get_settings()
        _store = ObjectStore(settings.storage_root, settings.storage_public_url)
    return _store
