"""Media storage adapters. Only the local filesystem adapter is provided."""
import asyncio
import base64
import binascii
import mimetypes
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path

import httpx

from postflow.config import Settings
from postflow.errors import UnsupportedStorageProvider
from postflow.models.schemas import MediaFile
from postflow.utils.logging import get_logger

logger = get_logger(__name__)


def _extension_for(content_type: str) -> str:
    ext = mimetypes.guess_extension((content_type or "").split(";")[0].strip())
    return (ext or ".bin").lstrip(".")


def _decode_data_url(ref: str) -> tuple[bytes, str]:
    """'data:image/png;base64,...' -> (bytes, 'image/png')."""
    header, _, payload = ref.partition(",")
    content_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    try:
        return base64.b64decode(payload), content_type
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid data URL") from e


class LocalStorage:
    """Writes under `root/YYYY/MM/DD/` and returns paths under `public_url`."""

    def __init__(self, root: Path, public_url: str = "/uploads", client: httpx.AsyncClient | None = None):
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")
        self._client = client

    def _target(self, filename: str) -> tuple[Path, str]:
        today = datetime.now(timezone.utc)
        rel = Path(f"{today:%Y}", f"{today:%m}", f"{today:%d}", filename)
        target = self.root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        return target, f"{self.public_url}/{rel.as_posix()}"

    async def upload_simple(self, ref: str) -> str:
        """Store a data URL or the body of an http(s) URL; returns the public path."""
        if ref.startswith("data:"):
            data, content_type = _decode_data_url(ref)
        else:
            if self._client is not None:
                resp = await self._client.get(ref)
            else:
                async with httpx.AsyncClient(timeout=60, follow_redirects=True) as client:
                    resp = await client.get(ref)
            resp.raise_for_status()
            data = resp.content
            content_type = resp.headers.get("content-type", "application/octet-stream")

        target, public_path = self._target(f"{uuid.uuid4().hex[:10]}.{_extension_for(content_type)}")
        await asyncio.to_thread(target.write_bytes, data)
        logger.info("storage_upload_simple", path=public_path, size=len(data))
        return public_path

    async def upload_file(self, file: MediaFile) -> str:
        """Copy a local file into storage; returns the public path."""
        suffix = Path(file.display_name).suffix or Path(file.path).suffix
        target, public_path = self._target(f"{uuid.uuid4().hex[:10]}{suffix}")
        await asyncio.to_thread(shutil.copyfile, file.path, target)
        logger.info("storage_upload_file", path=public_path, size=file.size)
        return public_path

    def local_path(self, public_path: str) -> Path | None:
        """Filesystem path for a public path; None if it escapes the storage root."""
        if not public_path.startswith(self.public_url + "/"):
            return None
        path = (self.root / public_path[len(self.public_url) + 1:]).resolve()
        try:
            path.relative_to(self.root.resolve())
        except ValueError:
            return None
        return path


def create_storage(settings: Settings) -> LocalStorage:
    provider = (settings.storage_provider or "local").lower()
    if provider == "local":
        return LocalStorage(settings.storage_dir, settings.storage_public_url)
    raise UnsupportedStorageProvider(provider)
