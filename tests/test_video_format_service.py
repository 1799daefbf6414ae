"""Tests for video compliance checks and ffprobe/ffmpeg invocation."""
import json
import subprocess
from unittest.mock import patch

import pytest

from postflow.errors import VideoProcessingError
from postflow.models.schemas import VideoMetadata
from postflow.services.video_format_service import (
    VideoFormatService,
    aspect_ratio,
    build_transcode_command,
    check_compliance,
    parse_frame_rate,
    parse_probe_output,
)


def metadata(**overrides) -> VideoMetadata:
    values = dict(
        duration=10.0,
        width=1080,
        height=1920,
        frame_rate=30.0,
        aspect_ratio="9:16",
        video_codec="h264",
        audio_codec="aac",
        bitrate=5_000_000,
        file_size=6_000_000,
    )
    values.update(overrides)
    return VideoMetadata(**values)


def probe_json(width=1080, height=1920, rate="30/1", audio=True) -> dict:
    streams = [{"codec_type": "video", "codec_name": "h264", "width": width, "height": height, "r_frame_rate": rate}]
    if audio:
        streams.append({"codec_type": "audio", "codec_name": "aac"})
    return {"streams": streams, "format": {"duration": "10.0", "bit_rate": "5000000", "size": "6000000"}}


class TestHelpers:
    """Aspect ratio and frame rate parsing."""

    def test_aspect_ratio(self):
        assert aspect_ratio(1080, 1920) == "9:16"
        assert aspect_ratio(1920, 1080) == "16:9"
        assert aspect_ratio(1080, 1350) == "4:5"

    def test_frame_rate(self):
        assert parse_frame_rate("30000/1001") == pytest.approx(29.97, abs=0.01)
        assert parse_frame_rate("25") == 25.0
        assert parse_frame_rate("0/0") == 0.0
        assert parse_frame_rate(None) == 0.0


class TestCheckCompliance:
    """Each violated constraint yields one issue and one recommendation."""

    def test_compliant_reel(self):
        result = check_compliance(metadata(), "REELS")
        assert result.is_valid
        assert result.issues == []

    def test_landscape_reel(self):
        result = check_compliance(metadata(width=1920, height=1080, aspect_ratio="16:9"), "REELS")
        assert not result.is_valid
        assert result.issues == ["Non-optimal aspect ratio: 16:9 (recommended: 9:16)"]
        assert result.recommendations == ["Convert to 9:16 aspect ratio (e.g., 1080x1920)"]

    def test_feed_square_is_supported(self):
        assert check_compliance(metadata(width=1080, height=1080, aspect_ratio="1:1"), "FEED").is_valid

    def test_feed_portrait_is_not(self):
        result = check_compliance(metadata(), "FEED")
        assert result.issues[0].startswith("Unsupported aspect ratio: 9:16")

    def test_story_too_long(self):
        result = check_compliance(metadata(duration=75.0), "STORIES")
        assert result.issues == ["Duration too long: 75.0s (max: 60s)"]

    def test_multiple_violations(self):
        result = check_compliance(metadata(video_codec="vp9", audio_codec="opus", frame_rate=15.0), "REELS")
        assert len(result.issues) == 3
        assert len(result.recommendations) == 3

    def test_silent_video_is_allowed(self):
        assert check_compliance(metadata(audio_codec="none"), "REELS").is_valid


class TestTranscodeCommand:
    """ffmpeg argument list per subtype."""

    def test_story_is_trimmed(self):
        cmd = build_transcode_command("ffmpeg", "in.mov", "out.mp4", "STORIES")
        assert cmd[cmd.index("-t") + 1] == "60"
        assert cmd[-2:] == ["-y", "out.mp4"]

    def test_reel_is_not_trimmed(self):
        cmd = build_transcode_command("ffmpeg", "in.mov", "out.mp4", "REELS")
        assert "-t" not in cmd
        assert "scale=1080:1920" in cmd[cmd.index("-vf") + 1]


class TestProbe:
    """ffprobe output parsing and invocation."""

    def test_no_video_stream(self):
        with pytest.raises(VideoProcessingError) as exc:
            parse_probe_output({"streams": [{"codec_type": "audio", "codec_name": "aac"}], "format": {}})
        assert "No video stream found" in str(exc.value)

    def test_missing_audio_is_none(self):
        assert parse_probe_output(probe_json(audio=False)).audio_codec == "none"

    def test_unknown_values_raise(self):
        data = probe_json()
        data["format"]["bit_rate"] = "N/A"
        with pytest.raises(VideoProcessingError) as exc:
            parse_probe_output(data)
        assert str(exc.value).startswith("Failed to extract video metadata")

    @pytest.mark.asyncio
    async def test_get_video_metadata(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=json.dumps(probe_json(rate="30000/1001")))
        with patch("postflow.services.video_format_service.subprocess.run", return_value=completed) as run:
            meta = await VideoFormatService(ffprobe_path="/usr/bin/ffprobe").get_video_metadata("clip.mp4")
        assert run.call_args.args[0][0] == "/usr/bin/ffprobe"
        assert run.call_args.args[0][-1] == "clip.mp4"
        assert meta.aspect_ratio == "9:16"
        assert meta.frame_rate == pytest.approx(29.97, abs=0.01)

    @pytest.mark.asyncio
    async def test_probe_failure_raises(self):
        error = subprocess.CalledProcessError(1, ["ffprobe"], stderr="first\nclip.mp4: Invalid data found\n")
        with patch("postflow.services.video_format_service.subprocess.run", side_effect=error):
            with pytest.raises(VideoProcessingError) as exc:
                await VideoFormatService().validate("clip.mp4")
        assert str(exc.value) == "clip.mp4: Invalid data found"

    @pytest.mark.asyncio
    async def test_missing_binary_raises(self):
        with patch("postflow.services.video_format_service.subprocess.run", side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(VideoProcessingError):
                await VideoFormatService().get_video_metadata("clip.mp4")
