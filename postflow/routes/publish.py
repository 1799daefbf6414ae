"""POST /publish: publish to Instagram now, or queue posts and enqueue an APScheduler job."""
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.config import settings
from postflow.db import get_db, init_db
from postflow.errors import PostflowError
from postflow.integrations.instagram_provider import InstagramProvider
from postflow.models.db_models import Integration, Post
from postflow.models.schemas import PublishItem, PublishItemSettings, PublishRequest, PublishResult, PublishSuccess
from postflow.routes.dependencies import get_organization_id, http_error
from postflow.services.posts_service import PostsService
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/publish", tags=["publish"])

# APScheduler will be set from main on startup
_scheduler = None


def set_scheduler(sched):
    global _scheduler
    _scheduler = sched


def get_scheduler():
    return _scheduler


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


async def load_integration(session: AsyncSession, organization_id: str, integration_id: int) -> Integration | None:
    r = await session.execute(
        select(Integration).where(
            Integration.id == integration_id,
            Integration.organization_id == organization_id,
            Integration.provider_identifier == InstagramProvider.identifier,
            Integration.disabled.is_(False),
        )
    )
    return r.scalar_one_or_none()


def _apply_results(posts: list[Post], results: list[PublishResult]) -> None:
    """Copy provider outcomes onto the post rows (matched by request item id)."""
    by_item = {(p.settings or {}).get("request_item_id"): p for p in posts}
    for result in results:
        post = by_item.get(result.request_item_id)
        if post is None:
            continue
        if isinstance(result, PublishSuccess):
            post.status = "PUBLISHED"
            post.provider_post_id = result.post_id
            post.release_url = result.permalink
        else:
            post.status = "ERROR"
            post.error = result.reason


async def _queue_posts(
    session: AsyncSession, organization_id: str, body: PublishRequest, publish_date: datetime
) -> list[Post]:
    posts_svc = PostsService(session, settings.posting_times)
    group_id = uuid.uuid4().hex
    return [
        await posts_svc.create_post(
            organization_id,
            item.message,
            publish_date,
            integration_id=body.integration_id,
            media=item.media,
            settings={
                **item.settings.model_dump(),
                "request_item_id": item.id,
                "allow_partial": body.allow_partial,
            },
            group_id=group_id,
        )
        for item in body.items
    ]


@router.post("")
async def publish(
    body: PublishRequest,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    """Future scheduled_at queues the batch; otherwise it is published immediately."""
    integration = await load_integration(session, organization_id, body.integration_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Integration not found")

    now = datetime.now(timezone.utc)
    if body.scheduled_at is not None and _utc(body.scheduled_at) > now:
        scheduled_at = _utc(body.scheduled_at)
        posts = await _queue_posts(session, organization_id, body, scheduled_at)
        await session.commit()
        group_id = posts[0].group_id
        sched = get_scheduler()
        if sched:
            sched.add_job(
                run_scheduled_publish,
                "date",
                run_date=scheduled_at,
                id=f"publish_{group_id}",
                args=[group_id],
                replace_existing=True,
            )
        return {"status": "scheduled", "scheduled_at": scheduled_at.isoformat(), "group_id": group_id}

    posts = await _queue_posts(session, organization_id, body, now)
    try:
        async with InstagramProvider.from_settings(settings) as provider:
            results = await provider.post(
                integration.internal_id, integration.access_token, body.items, allow_partial=body.allow_partial
            )
    except PostflowError as e:
        for p in posts:
            p.status, p.error = "ERROR", str(e)
        await session.commit()
        raise http_error(e) from e

    _apply_results(posts, results)
    await session.commit()
    return {"status": "published", "results": [r.model_dump() for r in results]}


async def run_scheduled_publish(group_id: str) -> None:
    """Background job: publish a queued group and record the outcome per post."""
    factory = init_db()
    async with factory() as session:
        r = await session.execute(
            select(Post)
            .where(Post.group_id == group_id, Post.status == "QUEUE", Post.deleted_at.is_(None))
            .order_by(Post.id)
        )
        posts = list(r.scalars().all())
        if not posts:
            logger.info("scheduled_publish_nothing_queued", group_id=group_id)
            return
        integration = await session.get(Integration, posts[0].integration_id) if posts[0].integration_id else None
        if not integration or integration.disabled:
            for p in posts:
                p.status, p.error = "ERROR", "Integration not available"
            await session.commit()
            logger.warning("scheduled_publish_no_integration", group_id=group_id)
            return

        items = [
            PublishItem(
                id=(p.settings or {}).get("request_item_id") or str(p.id),
                message=p.content,
                media=p.media or [],
                settings=PublishItemSettings.model_validate(p.settings or {}),
            )
            for p in posts
        ]
        allow_partial = bool((posts[0].settings or {}).get("allow_partial"))
        try:
            async with InstagramProvider.from_settings(settings) as provider:
                results = await provider.post(
                    integration.internal_id, integration.access_token, items, allow_partial=allow_partial
                )
        except PostflowError as e:
            for p in posts:
                p.status, p.error = "ERROR", str(e)
            await session.commit()
            logger.error("scheduled_publish_failed", group_id=group_id, error=str(e))
            return
        _apply_results(posts, results)
        await session.commit()
    logger.info("scheduled_publish_done", group_id=group_id, items=len(items))
