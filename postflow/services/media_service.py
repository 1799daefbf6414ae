"""Media admission: Instagram video compliance on upload, storage and media records."""
import os
from pathlib import Path

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.errors import VideoProcessingError
from postflow.models.db_models import Media, utcnow
from postflow.models.schemas import MediaFile
from postflow.services.storage import LocalStorage
from postflow.services.video_format_service import VideoFormatService
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 28


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
        logger.info("media_temp_removed", path=path)
    except OSError as e:
        logger.warning("media_temp_cleanup_failed", path=path, error=str(e))


class MediaService:
    def __init__(self, session: AsyncSession, storage: LocalStorage, video: VideoFormatService | None = None):
        self.session = session
        self.storage = storage
        self.video = video or VideoFormatService()

    async def _admit_video(self, file: MediaFile) -> MediaFile:
        """
        Return a REELS-compliant version of the video.

        Compliant videos come back unchanged. Non-compliant ones are transcoded next to
        the original as processed_<name>.mp4. Any validation or transcoding failure is
        logged and the original file is returned.
        """
        try:
            validation = await self.video.validate(file.path, "REELS")
            if validation.is_valid:
                logger.info("video_already_compliant", name=file.display_name)
                return file
            logger.info("video_needs_processing", name=file.display_name, issues=validation.issues)
            processed_name = f"processed_{Path(file.display_name).stem}.mp4"
            processed_path = str(Path(file.path).parent / processed_name)
            processed = await self.video.transcode(file.path, processed_path, "REELS")
            return processed.model_copy(update={"display_name": processed_name})
        except (VideoProcessingError, OSError) as e:
            logger.warning("video_processing_failed_uploading_original", name=file.display_name, error=str(e))
            return file

    async def upload(self, organization_id: str, file: MediaFile) -> Media:
        admitted = await self._admit_video(file) if file.is_video else file
        public_path = await self.storage.upload_file(admitted)

        if admitted.path != file.path:
            _remove_quietly(admitted.path)
            _remove_quietly(file.path)

        return await self.save_file(organization_id, admitted.display_name, public_path)

    async def save_file(self, organization_id: str, name: str, path: str) -> Media:
        media = Media(organization_id=organization_id, name=name, path=path)
        self.session.add(media)
        await self.session.flush()
        return media

    async def save_files(self, organization_id: str, files: list[tuple[str, str]]) -> list[Media]:
        """Insert (name, path) pairs in order with a single flush."""
        rows = [Media(organization_id=organization_id, name=name, path=path) for name, path in files]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_media(self, organization_id: str, page: int = 1) -> dict:
        base = (Media.organization_id == organization_id, Media.deleted_at.is_(None))
        total = (await self.session.execute(select(func.count(Media.id)).where(*base))).scalar_one()
        r = await self.session.execute(
            select(Media)
            .where(*base)
            .order_by(Media.created_at.desc())
            .offset((max(page, 1) - 1) * PAGE_SIZE)
            .limit(PAGE_SIZE)
        )
        return {"pages": -(-int(total) // PAGE_SIZE), "results": list(r.scalars().all())}

    async def get_by_id(self, organization_id: str, media_id: str) -> Media | None:
        r = await self.session.execute(
            select(Media).where(
                Media.id == media_id,
                Media.organization_id == organization_id,
                Media.deleted_at.is_(None),
            )
        )
        return r.scalar_one_or_none()

    async def delete_media(self, organization_id: str, media_id: str) -> int:
        r = await self.session.execute(
            update(Media)
            .where(Media.id == media_id, Media.organization_id == organization_id, Media.deleted_at.is_(None))
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return r.rowcount or 0
