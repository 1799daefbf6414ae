"""Media library: upload (with Instagram video admission), list, delete, download."""
import asyncio
import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.config import settings
from postflow.db import get_db
from postflow.models.schemas import MediaFile, MediaOut
from postflow.routes.dependencies import get_organization_id, get_storage
from postflow.services.media_service import MediaService
from postflow.services.storage import LocalStorage
from postflow.services.video_format_service import VideoFormatService
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/media", tags=["media"])


def _service(session: AsyncSession, storage: LocalStorage) -> MediaService:
    return MediaService(session, storage, VideoFormatService(settings.ffmpeg_path, settings.ffprobe_path))


def _spool(upload: UploadFile, directory: str) -> MediaFile:
    """Write the multipart body to a temp file."""
    name = Path(upload.filename or "upload.bin").name
    path = Path(directory) / name
    with path.open("wb") as out:
        shutil.copyfileobj(upload.file, out)
    return MediaFile(
        path=str(path),
        mime_type=upload.content_type or "application/octet-stream",
        size=path.stat().st_size,
        display_name=name,
    )


@router.post("/upload", response_model=MediaOut)
async def upload_media(
    file: UploadFile = File(...),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    """Videos are checked against REELS constraints and re-encoded when needed."""
    tmp_dir = tempfile.mkdtemp(prefix="postflow_")
    try:
        media_file = await asyncio.to_thread(_spool, file, tmp_dir)
        media = await _service(session, storage).upload(organization_id, media_file)
        await session.commit()
    finally:
        await asyncio.to_thread(shutil.rmtree, tmp_dir, True)
    logger.info("media_uploaded", organization_id=organization_id, media_id=media.id, name=media.name)
    return media


@router.get("")
async def list_media(
    page: int = Query(1, ge=1),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    result = await _service(session, storage).get_media(organization_id, page)
    return {
        "pages": result["pages"],
        "results": [MediaOut.model_validate(m).model_dump(mode="json") for m in result["results"]],
    }


@router.delete("/{media_id}")
async def delete_media(
    media_id: str,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    if await _service(session, storage).delete_media(organization_id, media_id) == 0:
        raise HTTPException(status_code=404, detail="Media not found")
    await session.commit()
    return {"deleted": media_id}


@router.get("/{media_id}/file")
async def get_media_file(
    media_id: str,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
):
    media = await _service(session, storage).get_by_id(organization_id, media_id)
    if not media:
        raise HTTPException(status_code=404, detail="Media not found")
    path = storage.local_path(media.path)
    if path is None:
        raise HTTPException(status_code=403, detail="Invalid path")
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Media file not found")
    return FileResponse(path, filename=media.name)
