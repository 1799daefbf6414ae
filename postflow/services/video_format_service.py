"""Instagram video compliance: ffprobe metadata, constraint checks and ffmpeg transcoding."""
import asyncio
import json
import math
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from postflow.errors import VideoProcessingError
from postflow.models.schemas import MediaFile, VideoMetadata, VideoValidation
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

VideoSubtype = Literal["REELS", "STORIES", "FEED"]

MB = 1024 * 1024


@dataclass(frozen=True)
class VideoConstraints:
    max_duration: float
    min_duration: float
    max_file_size: int
    max_width: int
    max_frame_rate: float
    min_frame_rate: float
    max_video_bitrate: int
    recommended_aspect_ratio: str | None = None
    supported_aspect_ratios: tuple[str, ...] = ()
    video_codecs: tuple[str, ...] = ("h264", "hevc")
    audio_codecs: tuple[str, ...] = ("aac",)
    containers: tuple[str, ...] = ("mp4", "mov")


INSTAGRAM_CONSTRAINTS: dict[str, VideoConstraints] = {
    "REELS": VideoConstraints(
        max_duration=900,
        min_duration=3,
        max_file_size=300 * MB,
        max_width=1920,
        max_frame_rate=60,
        min_frame_rate=23,
        max_video_bitrate=25 * MB,
        recommended_aspect_ratio="9:16",
    ),
    "STORIES": VideoConstraints(
        max_duration=60,
        min_duration=3,
        max_file_size=100 * MB,
        max_width=1920,
        max_frame_rate=60,
        min_frame_rate=23,
        max_video_bitrate=25 * MB,
        recommended_aspect_ratio="9:16",
    ),
    "FEED": VideoConstraints(
        max_duration=60,
        min_duration=3,
        max_file_size=100 * MB,
        max_width=1920,
        max_frame_rate=60,
        min_frame_rate=23,
        max_video_bitrate=25 * MB,
        supported_aspect_ratios=("1:1", "4:5", "16:9"),
    ),
}

# Output frame per subtype (letterboxed)
_TARGET_SIZE = {"REELS": (1080, 1920), "STORIES": (1080, 1920), "FEED": (1080, 1080)}


def aspect_ratio(width: int, height: int) -> str:
    """GCD-reduced 'w:h', e.g. 1080x1920 -> '9:16'."""
    d = math.gcd(width, height) or 1
    return f"{width // d}:{height // d}"


def parse_frame_rate(value: str | None) -> float:
    """'30000/1001' -> 29.97; plain numbers pass through."""
    if not value:
        return 0.0
    if "/" in value:
        num, den = value.split("/", 1)
        return float(num) / float(den) if float(den) else 0.0
    return float(value)


def check_compliance(metadata: VideoMetadata, subtype: VideoSubtype = "REELS") -> VideoValidation:
    """Each violated constraint yields one issue and one recommendation."""
    req = INSTAGRAM_CONSTRAINTS[subtype]
    issues: list[str] = []
    recommendations: list[str] = []

    if metadata.duration > req.max_duration:
        issues.append(f"Duration too long: {metadata.duration:.1f}s (max: {req.max_duration:g}s)")
        recommendations.append(f"Trim video to under {req.max_duration:g} seconds")
    if metadata.duration < req.min_duration:
        issues.append(f"Duration too short: {metadata.duration:.1f}s (min: {req.min_duration:g}s)")
        recommendations.append(f"Extend video to at least {req.min_duration:g} seconds")

    if metadata.file_size > req.max_file_size:
        issues.append(
            f"File size too large: {metadata.file_size / MB:.1f}MB (max: {req.max_file_size // MB}MB)"
        )
        recommendations.append("Compress video or reduce quality")

    if metadata.video_codec.lower() not in req.video_codecs:
        issues.append(f"Unsupported video codec: {metadata.video_codec}")
        recommendations.append("Convert to H.264 codec")
    if metadata.audio_codec != "none" and metadata.audio_codec.lower() not in req.audio_codecs:
        issues.append(f"Unsupported audio codec: {metadata.audio_codec}")
        recommendations.append("Convert to AAC audio codec")

    if metadata.frame_rate > req.max_frame_rate:
        issues.append(f"Frame rate too high: {metadata.frame_rate:g}fps (max: {req.max_frame_rate:g}fps)")
        recommendations.append("Reduce frame rate to 30fps or lower")
    if metadata.frame_rate < req.min_frame_rate:
        issues.append(f"Frame rate too low: {metadata.frame_rate:g}fps (min: {req.min_frame_rate:g}fps)")
        recommendations.append(f"Increase frame rate to at least {req.min_frame_rate:g}fps")

    if metadata.width > req.max_width:
        issues.append(f"Width too large: {metadata.width}px (max: {req.max_width}px)")
        recommendations.append(f"Resize video width to {req.max_width}px or less")

    if req.recommended_aspect_ratio and metadata.aspect_ratio != req.recommended_aspect_ratio:
        issues.append(
            f"Non-optimal aspect ratio: {metadata.aspect_ratio} (recommended: {req.recommended_aspect_ratio})"
        )
        recommendations.append(f"Convert to {req.recommended_aspect_ratio} aspect ratio (e.g., 1080x1920)")
    elif req.supported_aspect_ratios and metadata.aspect_ratio not in req.supported_aspect_ratios:
        supported = ", ".join(req.supported_aspect_ratios)
        issues.append(f"Unsupported aspect ratio: {metadata.aspect_ratio} (supported: {supported})")
        recommendations.append("Convert to 1:1 aspect ratio (e.g., 1080x1080)")

    if metadata.bitrate > req.max_video_bitrate:
        issues.append(
            f"Bitrate too high: {metadata.bitrate / MB:.1f}Mbps (max: {req.max_video_bitrate // MB}Mbps)"
        )
        recommendations.append("Reduce video bitrate")

    return VideoValidation(
        is_valid=not issues,
        issues=issues,
        recommendations=recommendations,
        metadata=metadata,
    )


def build_transcode_command(
    ffmpeg: str, input_path: str, output_path: str, subtype: VideoSubtype = "REELS"
) -> list[str]:
    req = INSTAGRAM_CONSTRAINTS[subtype]
    w, h = _TARGET_SIZE[subtype]
    cmd = [
        ffmpeg, "-i", input_path,
        "-c:v", "libx264", "-profile:v", "high", "-level", "4.0",
        "-pix_fmt", "yuv420p", "-movflags", "+faststart",
        "-vf", f"scale={w}:{h}:force_original_aspect_ratio=decrease,pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:black",
        "-crf", "23", "-maxrate", "8M", "-bufsize", "16M",
        "-r", "30",
        "-c:a", "aac", "-ar", "44100", "-b:a", "128k", "-ac", "2",
    ]
    if req.max_duration < 900:
        cmd += ["-t", f"{req.max_duration:g}"]
    cmd += ["-y", output_path]
    return cmd


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(cmd, capture_output=True, text=True, check=True)
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip().splitlines()
        raise VideoProcessingError(stderr[-1] if stderr else f"{cmd[0]} exited with {e.returncode}") from e
    except OSError as e:
        raise VideoProcessingError(f"{cmd[0]} could not be started: {e}") from e


class VideoFormatService:
    """ffprobe/ffmpeg run in a worker thread so the event loop is never blocked."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", ffprobe_path: str = "ffprobe"):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path

    async def get_video_metadata(self, path: str) -> VideoMetadata:
        cmd = [self.ffprobe_path, "-v", "quiet", "-print_format", "json", "-show_format", "-show_streams", path]
        proc = await asyncio.to_thread(_run, cmd)
        try:
            data = json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise VideoProcessingError(f"Failed to extract video metadata: {e}") from e
        return parse_probe_output(data)

    async def validate(self, path: str, subtype: VideoSubtype = "REELS") -> VideoValidation:
        metadata = await self.get_video_metadata(path)
        return check_compliance(metadata, subtype)

    async def transcode(self, input_path: str, output_path: str, subtype: VideoSubtype = "REELS") -> MediaFile:
        cmd = build_transcode_command(self.ffmpeg_path, input_path, output_path, subtype)
        logger.info("video_transcode_start", input=input_path, output=output_path, subtype=subtype)
        await asyncio.to_thread(_run, cmd)
        size = os.path.getsize(output_path)
        logger.info("video_transcode_done", output=output_path, size=size)
        return MediaFile(path=output_path, mime_type="video/mp4", size=size, display_name=Path(output_path).name)


def parse_probe_output(data: dict) -> VideoMetadata:
    """ffprobe JSON -> VideoMetadata; raises VideoProcessingError without a video stream."""
    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if video is None:
        raise VideoProcessingError("Failed to extract video metadata: No video stream found")

    fmt = data.get("format") or {}
    try:
        width, height = int(video.get("width") or 0), int(video.get("height") or 0)
        return VideoMetadata(
            duration=float(fmt.get("duration") or 0),
            width=width,
            height=height,
            frame_rate=parse_frame_rate(video.get("r_frame_rate")),
            aspect_ratio=aspect_ratio(width, height),
            video_codec=video.get("codec_name") or "",
            audio_codec=(audio or {}).get("codec_name") or "none",
            bitrate=int(fmt.get("bit_rate") or 0),
            file_size=int(fmt.get("size") or 0),
        )
    except (TypeError, ValueError) as e:
        # ffprobe reports unknown values as "N/A"
        raise VideoProcessingError(f"Failed to extract video metadata: {e}") from e
