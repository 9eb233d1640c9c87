from pathlib import Path
from typing import Iterable, Optional
import logging
import random
import time
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool
from ..config import Settings
from ..errors import InvalidInput, Internal

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
NAME_ATTEMPTS = 5


class AttachmentHandler:
    """
    Stores chart screenshots uploaded with a trade.

    Files land in ``upload_dir`` under a generated name and are served
    statically from ``url_prefix``. Images are written as received, never
    transcoded.
    """

    def __init__(
        self,
        upload_dir,
        url_prefix: str = "/uploads",
        allowed_extensions: Iterable[str] = (".png", ".jpg", ".jpeg", ".gif", ".webp"),
        max_bytes: int = 5 * 1024 * 1024,
    ):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.max_bytes = max_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "AttachmentHandler":
        return cls(
            upload_dir=settings.upload_dir,
            url_prefix=settings.uploads_url_prefix,
            allowed_extensions=settings.allowed_image_extensions,
            max_bytes=settings.max_upload_bytes,
        )

    def ensure_upload_dir(self):
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def generate_name(extension: str) -> str:
        millis = int(time.time() * 1000)
        suffix = random.randint(0, 10**9 - 1)
        return f"{millis}-{suffix:09d}{extension}"

    def _validate(self, upload: UploadFile) -> str:
        extension = Path(upload.filename or "").suffix.lower()
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise InvalidInput(f"Unsupported image type, allowed: {allowed}")

        content_type = upload.content_type
        if content_type and not content_type.startswith("image/"):
            raise InvalidInput("Attachment must be an image")

        return extension

    async def _open_unique(self, extension: str):
        """Create a new file exclusively, drawing another name on collision"""
        for _ in range(NAME_ATTEMPTS):
            path = self.upload_dir / self.generate_name(extension)
            try:
                out = await run_in_threadpool(path.open, "xb")
            except FileExistsError:
                continue
            return path, out
        raise Internal("Could not allocate a name for the attachment")

    async def store(self, upload: UploadFile) -> str:
        """Write the upload to disk and return its relative URL"""
        extension = self._validate(upload)
        self.ensure_upload_dir()

        path, out = await self._open_unique(extension)
        written = 0
        try:
            try:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise InvalidInput(
                            f"Image is too large (max {self.max_bytes} bytes)"
                        )
                    await run_in_threadpool(out.write, chunk)
            finally:
                await run_in_threadpool(out.close)
        except Exception:
            path.unlink(missing_ok=True)
            raise

        logger.info(f"📎 Stored attachment {path.name} ({written} bytes)")
        return f"{self.url_prefix}/{path.name}"

    def path_for(self, reference_url: str) -> Optional[Path]:
        """Map a reference URL back to its file, None if it isn't one of ours"""
        if not reference_url or not reference_url.startswith(f"{self.url_prefix}/"):
            return None
        name = reference_url[len(self.url_prefix) + 1:]
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            return None
        return self.upload_dir / name

    def remove(self, reference_url: str):
        path = self.path_for(reference_url)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
            logger.info(f"🗑️ Removed attachment {path.name}")
        except OSError as e:
            logger.error(f"Failed to remove attachment {path}: {e}")
