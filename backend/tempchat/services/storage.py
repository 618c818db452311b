# tempchat/services/storage.py

import logging
import mimetypes
import secrets
from pathlib import Path, PurePath

from tempchat.core.config import MAX_UPLOAD_BYTES, UPLOAD_DIR
from tempchat.core.errors import InvalidRequest, NotFound, PayloadTooLarge
from tempchat.core.types import Attachment

logger = logging.getLogger(__name__)

FILES_URL_PREFIX = "/api/files/"


class FileStorage:
    """Uploaded attachments on local disk. Messages only keep the descriptor."""

    def __init__(self, root: Path = UPLOAD_DIR, max_bytes: int = MAX_UPLOAD_BYTES):
        self.root = Path(root)
        self.max_bytes = max_bytes

    def save(self, data: bytes, original_name: str, mime_type: str | None = None) -> Attachment:
        if not data:
            raise InvalidRequest("No file provided")
        if len(data) > self.max_bytes:
            raise PayloadTooLarge(f"File size exceeds {self.max_bytes // (1024 * 1024)}MB limit")

        # keep only the extension of the client's name
        suffix = PurePath(original_name or "").suffix.lower()
        stored_name = f"{secrets.token_hex(12)}{suffix}"

        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / stored_name).write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", stored_name, len(data))

        return Attachment(
            stored_name=stored_name,
            original_name=original_name or stored_name,
            size_bytes=len(data),
            mime_type=mime_type or guess_type(stored_name),
            url=f"{FILES_URL_PREFIX}{stored_name}",
        )

    def path_for(self, stored_name: str) -> Path:
        if not stored_name or ".." in stored_name or "/" in stored_name or "\\" in stored_name:
            raise InvalidRequest("Invalid filename")
        path = self.root / stored_name
        if not path.is_file():
            raise NotFound("File not found")
        return path


def guess_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"
