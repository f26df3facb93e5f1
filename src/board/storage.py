"""Local disk storage for uploaded files."""

import logging
import os
import secrets
import time
from contextlib import contextmanager
from pathlib import Path

from fastapi import UploadFile
from prometheus_client import Counter

from .errors import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_COUNTER = Counter("uploads_total", "Total files stored", ["prefix"])

PUBLIC_PREFIX = "/uploads"
_CHUNK_SIZE = 1024 * 1024


class LocalBlobStore:
    """Write uploads under ``root`` and hand back a public ``/uploads/...`` URL."""

    def __init__(self, root: str | os.PathLike, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def _filename(self, prefix: str, original: str | None) -> str:
        ext = Path(original or "").suffix.lower()
        unique = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        return f"{prefix}-{unique}{ext}"

    def put(self, upload: UploadFile, prefix: str, max_bytes: int | None = None) -> str:
        limit = max_bytes or self.max_bytes
        self.root.mkdir(parents=True, exist_ok=True)
        name = self._filename(prefix, upload.filename)
        target = self.root / name
        written = 0
        try:
            with target.open("wb") as out:
                while chunk := upload.file.read(_CHUNK_SIZE):
                    written += len(chunk)
                    if written > limit:
                        raise ValidationError(f"File exceeds the {limit // (1024 * 1024)}MB limit")
                    out.write(chunk)
        except Exception:
            target.unlink(missing_ok=True)
            raise
        UPLOAD_COUNTER.labels(prefix=prefix).inc()
        logger.info("stored upload %s (%d bytes)", name, written)
        return f"{PUBLIC_PREFIX}/{name}"

    @contextmanager
    def staged(self, upload: UploadFile | None, prefix: str, max_bytes: int | None = None):
        """Store ``upload`` (if any) and remove it again if the block raises."""
        url = self.put(upload, prefix, max_bytes) if upload is not None and upload.filename else None
        try:
            yield url
        except Exception:
            self.delete(url)
            raise

    def delete(self, url: str | None) -> None:
        if not url or not url.startswith(PUBLIC_PREFIX + "/"):
            return
        name = Path(url).name
        (self.root / name).unlink(missing_ok=True)
