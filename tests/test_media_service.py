"""Tests for media admission, storage and media records."""
import json
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from postflow.errors import VideoProcessingError
from postflow.models.schemas import MediaFile, VideoValidation
from postflow.services.media_service import PAGE_SIZE, MediaService
from postflow.services.video_format_service import VideoFormatService

ORG = "org-media"


def write(path: Path, data: bytes = b"data") -> MediaFile:
    path.write_bytes(data)
    mime = "video/mp4" if path.suffix in (".mp4", ".mov") else "image/png"
    return MediaFile(path=str(path), mime_type=mime, size=len(data), display_name=path.name)


def fake_video(valid: bool = True, transcode_error: Exception | None = None):
    video = MagicMock()
    video.validate = AsyncMock(return_value=VideoValidation(is_valid=valid, issues=[] if valid else ["bad"]))

    async def transcode(input_path, output_path, subtype="REELS"):
        if transcode_error:
            raise transcode_error
        Path(output_path).write_bytes(b"transcoded")
        return MediaFile(path=output_path, mime_type="video/mp4", size=10, display_name=Path(output_path).name)

    video.transcode = AsyncMock(side_effect=transcode)
    return video


class TestUpload:
    """Video admission on upload."""

    @pytest.mark.asyncio
    async def test_image_skips_video_checks(self, session, storage, tmp_path):
        video = fake_video()
        media = await MediaService(session, storage, video).upload(ORG, write(tmp_path / "pic.png"))
        video.validate.assert_not_called()
        assert media.name == "pic.png"
        assert storage.local_path(media.path).read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_compliant_video_is_stored_as_is(self, session, storage, tmp_path):
        video = fake_video(valid=True)
        source = write(tmp_path / "clip.mp4")
        media = await MediaService(session, storage, video).upload(ORG, source)
        video.transcode.assert_not_called()
        assert media.name == "clip.mp4"
        assert Path(source.path).exists()

    @pytest.mark.asyncio
    async def test_non_compliant_video_is_transcoded(self, session, storage, tmp_path):
        video = fake_video(valid=False)
        source = write(tmp_path / "clip.mov")
        media = await MediaService(session, storage, video).upload(ORG, source)

        assert video.transcode.call_args.args[1] == str(tmp_path / "processed_clip.mp4")
        assert media.name == "processed_clip.mp4"
        assert media.path.endswith(".mp4")
        assert storage.local_path(media.path).read_bytes() == b"transcoded"
        # Both temporary files are gone after upload
        assert not (tmp_path / "processed_clip.mp4").exists()
        assert not (tmp_path / "clip.mov").exists()

    @pytest.mark.asyncio
    async def test_validation_failure_uploads_original(self, session, storage, tmp_path):
        video = fake_video()
        video.validate.side_effect = VideoProcessingError("ffprobe could not be started")
        media = await MediaService(session, storage, video).upload(ORG, write(tmp_path / "clip.mp4"))
        assert media.name == "clip.mp4"
        assert storage.local_path(media.path).read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_transcode_failure_uploads_original(self, session, storage, tmp_path):
        video = fake_video(valid=False, transcode_error=VideoProcessingError("encoder missing"))
        media = await MediaService(session, storage, video).upload(ORG, write(tmp_path / "clip.mp4"))
        assert media.name == "clip.mp4"

    @pytest.mark.asyncio
    async def test_unreadable_probe_output_uploads_original(self, session, storage, tmp_path):
        probe = {
            "streams": [{"codec_type": "video", "codec_name": "h264", "width": 1080, "height": 1920}],
            "format": {"duration": "N/A", "bit_rate": "N/A", "size": "4"},
        }
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=json.dumps(probe))
        with patch("postflow.services.video_format_service.subprocess.run", return_value=completed):
            media = await MediaService(session, storage, VideoFormatService()).upload(ORG, write(tmp_path / "clip.mp4"))
        assert media.name == "clip.mp4"
        assert storage.local_path(media.path).read_bytes() == b"data"


class TestMediaRecords:
    """Save, page and soft delete."""

    @pytest.mark.asyncio
    async def test_save_files_keeps_order(self, session, storage):
        rows = await MediaService(session, storage).save_files(ORG, [("a.png", "/uploads/a"), ("b.png", "/uploads/b")])
        assert [r.name for r in rows] == ["a.png", "b.png"]
        assert all(r.id for r in rows)

    @pytest.mark.asyncio
    async def test_paging(self, session, storage):
        service = MediaService(session, storage)
        await service.save_files(ORG, [(f"{i}.png", f"/uploads/{i}") for i in range(PAGE_SIZE + 2)])
        first = await service.get_media(ORG, 1)
        second = await service.get_media(ORG, 2)
        assert first["pages"] == 2
        assert len(first["results"]) == PAGE_SIZE
        assert len(second["results"]) == 2

    @pytest.mark.asyncio
    async def test_soft_delete_is_scoped(self, session, storage):
        service = MediaService(session, storage)
        media = await service.save_file(ORG, "a.png", "/uploads/a")
        assert await service.delete_media("other-org", media.id) == 0
        assert await service.delete_media(ORG, media.id) == 1
        assert await service.get_by_id(ORG, media.id) is None
        assert (await service.get_media(ORG))["pages"] == 0
