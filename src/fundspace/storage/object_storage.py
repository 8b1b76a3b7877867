"""File-backed object storage for avatars and organization logos."""

import secrets
import string
import time
from pathlib import Path
from typing import Optional

import structlog

from ..core.config import Settings, get_settings
from ..core.exceptions import FileSizeError, FileTypeError, FileUploadError

logger = structlog.get_logger(__name__)

AVATARS = "avatars"
ORGANIZATION_LOGOS = "organization-logos"
BUCKETS = (AVATARS, ORGANIZATION_LOGOS)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
_ALPHABET = string.ascii_lowercase + string.digits


def _random_suffix(length: int = 13) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def _extension(filename: str, content_type: str) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    return _EXTENSIONS.get(content_type, "bin")


class ObjectStorage:
    """Public buckets stored as directories under ``storage_root``."""

    def __init__(self, settings: Optional[Settings] = None, root: Optional[str] = None):
        self.settings = settings or get_settings()
        self.root = Path(root or self.settings.storage_root)
        self.base_url = self.settings.public_storage_url.rstrip("/")

    def _bucket_dir(self, bucket: str) -> Path:
        if bucket not in BUCKETS:
            raise FileUploadError(f"Unknown storage bucket '{bucket}'", details={"bucket": bucket})
        path = self.root / bucket
        path.mkdir(parents=True, exist_ok=True)
        return path

    def validate(self, data: bytes, content_type: str) -> None:
        """Reject files over the size limit and anything that is not an allowed image type."""
        allowed = list(self.settings.allowed_image_types)
        if content_type not in allowed:
            raise FileTypeError(allowed, content_type)
        if len(data) > self.settings.max_upload_bytes:
            raise FileSizeError(self.settings.max_upload_bytes, len(data))

    def object_name(self, prefix: str, filename: str, content_type: str) -> str:
        return f"{prefix}-{int(time.time() * 1000)}-{_random_suffix()}.{_extension(filename, content_type)}"

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.base_url}/{bucket}/{name}"

    def upload(self, bucket: str, filename: str, data: bytes, content_type: str, prefix: Optional[str] = None) -> str:
        """Store an image and return its cache-busted public URL."""
        self.validate(data, content_type)
        name = self.object_name(prefix or bucket, filename, content_type)
        path = self._bucket_dir(bucket) / name
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error("Object write failed", bucket=bucket, name=name, error=str(e))
            raise FileUploadError(f"Failed to store {name}: {e}")

        logger.info("Object stored", bucket=bucket, name=name, size=len(data))
        return f"{self.public_url(bucket, name)}?v={int(time.time() * 1000)}"

    def path_for(self, bucket: str, name: str) -> Path:
        """Filesystem path of a stored object; names may not leave the bucket."""
        if "/" in name or "\\" in name or name.startswith("."):
            raise FileUploadError(f"Invalid object name '{name}'", details={"name": name})
        return self._bucket_dir(bucket) / name

