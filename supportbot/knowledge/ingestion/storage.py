"""Local file storage for uploaded knowledge-base documents."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from supportbot.core.config import settings
from supportbot.core.exceptions import ApplicationError

logger = logging.getLogger(__name__)


class FileStorageError(ApplicationError):
    """Raised when an uploaded file cannot be persisted."""

    status_code = 500
    code = "storage_error"


@dataclass
class StoredFile:
    filename: str
    path: str
    size: int


class FileStorage:
    """Persist raw uploads under a single directory on local disk."""

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root or settings.UPLOAD_DIR)

    async def write(self, content: bytes, *, extension: str = "") -> StoredFile:
        filename = self._build_filename(extension)
        destination = self.root / filename

        def write() -> None:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "wb") as handle:
                handle.write(content)

        try:
            await asyncio.to_thread(write)
        except OSError as exc:
            raise FileStorageError(f"Unable to store upload: {exc}") from exc
        return StoredFile(filename=filename, path=str(destination.resolve()), size=len(content))

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def delete(self, path: str) -> bool:
        """Remove a stored file; a file that is already gone is reported, not raised."""

        def unlink() -> bool:
            try:
                Path(path).unlink()
            except FileNotFoundError:
                return False
            return True

        removed = await asyncio.to_thread(unlink)
        if not removed:
            logger.warning("Stored file %s was already missing", path)
        return removed

    @staticmethod
    def _build_filename(extension: str) -> str:
        unique_suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
        return f"doc-{unique_suffix}{extension}"
