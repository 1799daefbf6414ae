"""Serve stored files by their public path (the URL handed to providers)."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from postflow.config import settings
from postflow.routes.dependencies import get_storage
from postflow.services.storage import LocalStorage

router = APIRouter(prefix=settings.storage_public_url.rstrip("/"), tags=["storage"])


@router.api_route("/{file_path:path}", methods=["GET", "HEAD"])
async def get_stored_file(file_path: str, storage: LocalStorage = Depends(get_storage)):
    """Return the stored file if it exists under the storage root."""
    path = storage.local_path(f"{storage.public_url}/{file_path}")
    if path is None:
        raise HTTPException(status_code=403, detail="Invalid path")
    if not path.is_file() or path.stat().st_size == 0:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path)
