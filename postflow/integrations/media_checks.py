"""Video URL admission: ordered content-type predicates, first match wins."""
from typing import Callable, Sequence

VIDEO_CONTENT_TYPES = (
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "video/avi",
    "application/octet-stream",
    "application/mp4",
    "video/mpeg",
    "video/webm",
)
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".quicktime", ".m4v", ".3gp", ".webm")
VIDEO_PATH_PATTERNS = ("uploads", "media", "videos", "assets", "/video/", "cdn", "storage")


def has_video_mime(content_type: str | None, url: str, trusted_domains: Sequence[str] = ()) -> bool:
    ct = (content_type or "").lower()
    return bool(ct) and any(t in ct for t in VIDEO_CONTENT_TYPES)


def has_video_extension(content_type: str | None, url: str, trusted_domains: Sequence[str] = ()) -> bool:
    # Extension must end the path, or be followed by a query string or fragment
    u = url.lower()
    return any(u.endswith(ext) or f"{ext}?" in u or f"{ext}#" in u for ext in VIDEO_EXTENSIONS)


def has_video_path_pattern(content_type: str | None, url: str, trusted_domains: Sequence[str] = ()) -> bool:
    u = url.lower()
    return "mp4" in u and any(p in u for p in VIDEO_PATH_PATTERNS)


def is_trusted_video_domain(content_type: str | None, url: str, trusted_domains: Sequence[str] = ()) -> bool:
    u = url.lower()
    return ("mp4" in u or "video" in u) and any(d.lower() in u for d in trusted_domains)


VIDEO_URL_CHECKS: tuple[Callable[[str | None, str, Sequence[str]], bool], ...] = (
    has_video_mime,
    has_video_extension,
    has_video_path_pattern,
    is_trusted_video_domain,
)


def check_video_content_type(
    content_type: str | None, url: str, trusted_domains: Sequence[str] = ()
) -> tuple[bool, str | None]:
    """(True, None) when any predicate accepts the URL, else (False, reason)."""
    for check in VIDEO_URL_CHECKS:
        if check(content_type, url, trusted_domains):
            return True, None
    return False, (
        f"Unable to validate video format. Content-Type: {content_type or 'missing'}, URL: {url}. "
        "This may be due to missing Content-Type headers from your CDN/server. "
        "Please ensure the video is in MP4 format and your server returns proper Content-Type headers."
    )
