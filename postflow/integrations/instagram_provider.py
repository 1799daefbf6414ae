"""Instagram publishing via the Facebook Graph API (business accounts)."""
import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Sequence

import httpx

from postflow.config import Settings, settings as default_settings
from postflow.errors import (
    MediaProcessingFailed,
    MediaProcessingTimeout,
    ProviderError,
    ProviderUnavailable,
    PublishError,
    VideoAdmissionError,
)
from postflow.integrations.media_checks import check_video_content_type
from postflow.models.schemas import AnalyticsSeries, PublishFailure, PublishItem, PublishResult, PublishSuccess
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

VIDEO_REENCODE_HINT = (
    "This may be due to container format issues. Try re-encoding the video with standard settings: "
    "H.264 video codec, AAC audio, MP4 container, 9:16 aspect ratio (1080x1920), max 30fps."
)


def is_video_url(url: str) -> bool:
    return ".mp4" in url


def decode_provider_error(payload: dict[str, Any], media_url: str | None = None) -> ProviderError:
    """Map a Graph API error payload to a ProviderError with a readable message."""
    error = payload.get("error") or {}
    code = error.get("code")
    subcode = error.get("error_subcode")
    message = error.get("message") or "Unknown error"

    if code == 352 and subcode == 2207026:
        message = f"Instagram video format error: {message}. Video URL: {media_url or 'unknown'}. {VIDEO_REENCODE_HINT}"
    elif code == 352:
        message = f"Instagram video upload error ({code}/{subcode}): {message}"
    return ProviderError(message, code=code, subcode=subcode, raw=payload)


def _require_id(payload: dict[str, Any], what: str) -> str:
    object_id = payload.get("id")
    if not object_id:
        raise ProviderError(f"Instagram {what} returned no id", raw=payload)
    return str(object_id)


def container_params(item: PublishItem, media_url: str, media_count: int) -> dict[str, str]:
    """Query parameters for one media container of the item."""
    is_story = item.settings.post_type == "story"
    params: dict[str, str] = {}
    if is_video_url(media_url):
        params["video_url"] = media_url
        params["media_type"] = "STORIES" if is_story else ("REELS" if media_count == 1 else "VIDEO")
    else:
        params["image_url"] = media_url
        if is_story:
            params["media_type"] = "STORIES"
    if media_count > 1:
        params["is_carousel_item"] = "true"
    if item.settings.collaborators and not is_story:
        params["collaborators"] = json.dumps(item.settings.collaborators)
    if media_count == 1:
        params["caption"] = item.message
    return params


class InstagramProvider:
    """
    Publish protocol: containers -> status polling -> (carousel) -> publish -> permalink -> comments.

    The first item is the post; every following item is published as a comment on it.
    """

    identifier = "instagram"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        poll_interval: float = 3.0,
        error_backoff: float = 5.0,
        max_attempts: int = 40,
        trusted_domains: Sequence[str] = (),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._client = client
        self._owns_client = client is None
        self.base_url = (base_url or default_settings.graph_base_url).rstrip("/")
        self.poll_interval = poll_interval
        self.error_backoff = error_backoff
        self.max_attempts = max_attempts
        self.trusted_domains = tuple(trusted_domains)
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> "InstagramProvider":
        return cls(
            client,
            base_url=settings.graph_base_url,
            poll_interval=settings.instagram_poll_interval,
            error_backoff=settings.instagram_poll_error_backoff,
            max_attempts=settings.instagram_poll_max_attempts,
            trusted_domains=settings.trusted_video_domains,
        )

    async def __aenter__(self) -> "InstagramProvider":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=60)
        return self._client

    # ----- HTTP -----
    async def _call(self, method: str, path: str, params: dict[str, Any], media_url: str | None = None) -> dict:
        """
        Graph call; any error payload is raised as ProviderError.

        Network failures and replies that are not a JSON object raise ProviderUnavailable.
        """
        try:
            resp = await self.client.request(method, f"{self.base_url}/{path}", params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable(f"Instagram request failed: {e}") from e
        try:
            payload = resp.json()
        except ValueError as e:
            raise ProviderUnavailable(
                f"Instagram API returned a non-JSON response (HTTP {resp.status_code})", resp.status_code
            ) from e
        if not isinstance(payload, dict):
            raise ProviderUnavailable(
                f"Instagram API returned an unexpected response (HTTP {resp.status_code})", resp.status_code
            )
        if payload.get("error"):
            raise decode_provider_error(payload, media_url)
        if resp.status_code >= 400:
            raise ProviderError(f"Instagram API returned HTTP {resp.status_code}", raw=payload)
        return payload

    # ----- Video admission -----
    async def check_video_url(self, url: str) -> None:
        """HEAD the URL and run the content-type checks; raises VideoAdmissionError."""
        try:
            resp = await self.client.head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise VideoAdmissionError(
                f"Video validation failed: {e}. Please ensure the video is accessible from the internet."
            ) from e
        if not resp.is_success:
            raise VideoAdmissionError(
                f"Video not accessible: HTTP {resp.status_code} - {resp.reason_phrase}. "
                "Please check if the video URL is correct and accessible."
            )
        ok, reason = check_video_content_type(resp.headers.get("content-type"), url, self.trusted_domains)
        if not ok:
            raise VideoAdmissionError(f"Video validation failed: {reason}")
        logger.info("instagram_video_admitted", url=url)

    # ----- Containers -----
    async def poll_container(self, container_id: str, access_token: str, media_url: str | None = None) -> str:
        """
        Wait until the container leaves IN_PROGRESS.

        At most max_attempts status reads. Network failures and unreadable replies count
        as attempts and back off longer; a provider error payload aborts at once.
        """
        status = "IN_PROGRESS"
        attempts = 0
        while attempts < self.max_attempts:
            try:
                payload = await self._call(
                    "GET", container_id, {"fields": "status_code", "access_token": access_token}, media_url
                )
            except ProviderUnavailable as e:
                attempts += 1
                logger.warning("instagram_status_check_failed", container_id=container_id, attempt=attempts, error=str(e))
                if attempts >= self.max_attempts:
                    raise MediaProcessingTimeout(
                        f"Instagram status check failed after {self.max_attempts} attempts: {e}"
                    ) from e
                await self._sleep(self.error_backoff)
                continue

            attempts += 1
            status = payload.get("status_code") or "IN_PROGRESS"
            logger.debug("instagram_media_status", container_id=container_id, status=status, attempt=attempts)
            if status != "IN_PROGRESS":
                break
            if attempts < self.max_attempts:
                await self._sleep(self.poll_interval)

        if status == "IN_PROGRESS":
            raise MediaProcessingTimeout(
                f"Instagram media processing timeout after {self.max_attempts * self.poll_interval:g} seconds"
            )
        if status == "ERROR":
            raise MediaProcessingFailed(
                f"Instagram media processing failed: {await self._error_description(container_id, access_token)}"
            )
        return status

    async def _error_description(self, container_id: str, access_token: str) -> str:
        try:
            payload = await self._call(
                "GET", container_id, {"fields": "status_code,error_description", "access_token": access_token}
            )
        except ProviderError as e:
            logger.warning("instagram_error_description_failed", container_id=container_id, error=str(e))
            return "Unknown error"
        return payload.get("error_description") or "Unknown error"

    async def _create_container(self, account_id: str, access_token: str, item: PublishItem, url: str) -> str:
        params = {**container_params(item, url, len(item.media)), "access_token": access_token}
        payload = await self._call("POST", f"{account_id}/media", params, media_url=url)
        container_id = _require_id(payload, "media container")
        logger.info("instagram_container_created", container_id=container_id, video=is_video_url(url))
        await self.poll_container(container_id, access_token, media_url=url)
        return container_id

    async def _publish(self, account_id: str, access_token: str, creation_id: str) -> tuple[str, str | None]:
        payload = await self._call(
            "POST", f"{account_id}/media_publish", {"creation_id": creation_id, "access_token": access_token}
        )
        media_id = _require_id(payload, "media_publish")
        link = await self._call("GET", media_id, {"fields": "permalink", "access_token": access_token})
        logger.info("instagram_media_published", media_id=media_id)
        return media_id, link.get("permalink")

    async def _publish_main(self, account_id: str, access_token: str, item: PublishItem) -> tuple[str, str | None]:
        if not item.media:
            raise PublishError("Instagram posts require at least one media item")

        for url in item.media:
            if is_video_url(url):
                await self.check_video_url(url)

        containers = await asyncio.gather(
            *(self._create_container(account_id, access_token, item, url) for url in item.media)
        )
        if len(containers) == 1:
            return await self._publish(account_id, access_token, containers[0])

        payload = await self._call(
            "POST",
            f"{account_id}/media",
            {
                "caption": item.message,
                "media_type": "CAROUSEL",
                "children": ",".join(containers),
                "access_token": access_token,
            },
        )
        carousel_id = _require_id(payload, "carousel container")
        logger.info("instagram_carousel_created", container_id=carousel_id, children=len(containers))
        await self.poll_container(carousel_id, access_token)
        return await self._publish(account_id, access_token, carousel_id)

    async def _comment(self, media_id: str, access_token: str, message: str) -> str:
        payload = await self._call(
            "POST", f"{media_id}/comments", {"message": message, "access_token": access_token}
        )
        return _require_id(payload, "comment")

    # ----- Public API -----
    async def post(
        self,
        account_id: str,
        access_token: str,
        items: Sequence[PublishItem],
        allow_partial: bool = False,
    ) -> list[PublishResult]:
        """
        Publish the first item and thread the rest as comments.

        allow_partial=False raises on the first failure. allow_partial=True records
        failures instead; a failed main post fails every item.
        """
        if not items:
            return []
        first, *rest = items
        try:
            media_id, permalink = await self._publish_main(account_id, access_token, first)
        except PublishError as e:
            logger.error("instagram_post_failed", account_id=account_id, items=len(items), error=str(e))
            if not allow_partial:
                raise
            return [PublishFailure(request_item_id=i.id, reason=str(e)) for i in items]

        results: list[PublishResult] = [
            PublishSuccess(request_item_id=first.id, post_id=media_id, permalink=permalink)
        ]
        for item in rest:
            try:
                comment_id = await self._comment(media_id, access_token, item.message)
            except PublishError as e:
                logger.error("instagram_comment_failed", media_id=media_id, item_id=item.id, error=str(e))
                if not allow_partial:
                    raise
                results.append(PublishFailure(request_item_id=item.id, reason=str(e)))
                continue
            results.append(PublishSuccess(request_item_id=item.id, post_id=comment_id, permalink=permalink))
        return results

    async def analytics(
        self, account_id: str, access_token: str, days: int, now: datetime | None = None
    ) -> list[AnalyticsSeries]:
        """Daily follower_count and reach series, plus total-value metrics spread over today and tomorrow."""
        now = now or datetime.now(timezone.utc)
        until = int(now.replace(hour=23, minute=59, second=59).timestamp())
        since = int((now - timedelta(days=days)).timestamp())
        window = {"access_token": access_token, "period": "day", "since": since, "until": until}

        daily = await self._call("GET", f"{account_id}/insights", {"metric": "follower_count,reach", **window})
        totals = await self._call(
            "GET",
            f"{account_id}/insights",
            {"metric_type": "total_value", "metric": "likes,views,comments,shares,saves,replies", **window},
        )

        series = [
            AnalyticsSeries(
                label=d.get("title") or d.get("name", ""),
                data=[{"total": v.get("value"), "date": (v.get("end_time") or "")[:10]} for v in d.get("values", [])],
            )
            for d in daily.get("data") or []
        ]
        today, tomorrow = now.date().isoformat(), (now + timedelta(days=1)).date().isoformat()
        for d in totals.get("data") or []:
            value = (d.get("total_value") or {}).get("value")
            series.append(
                AnalyticsSeries(
                    label=d.get("title") or d.get("name", ""),
                    data=[{"total": value, "date": today}, {"total": value, "date": tomorrow}],
                )
            )
        return series
