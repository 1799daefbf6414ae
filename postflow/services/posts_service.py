"""Post store used by the workflow: classification vocabulary, exemplars and free publish slots."""
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.models.db_models import PopularPost, Post
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_POSTING_TIMES = (120, 400, 700)
SEARCH_WINDOW_DAYS = 366


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PostsService:
    """Organization-scoped queries over posts and popular posts."""

    def __init__(self, session: AsyncSession, posting_times: Sequence[int] = DEFAULT_POSTING_TIMES):
        self.session = session
        self.posting_times = sorted(posting_times)

    async def find_all_existing_categories(self, organization_id: str) -> list[str]:
        r = await self.session.execute(
            select(PopularPost.category)
            .where(PopularPost.organization_id == organization_id)
            .distinct()
            .order_by(PopularPost.category)
        )
        return [c for c in r.scalars().all() if c]

    async def find_all_existing_topics_of_category(self, organization_id: str, category: str) -> list[str]:
        r = await self.session.execute(
            select(PopularPost.topic)
            .where(
                PopularPost.organization_id == organization_id,
                PopularPost.category == category,
                PopularPost.topic.is_not(None),
            )
            .distinct()
            .order_by(PopularPost.topic)
        )
        return [t for t in r.scalars().all() if t]

    async def find_popular_posts(
        self, organization_id: str, category: str | None, topic: str | None = None
    ) -> list[dict[str, str]]:
        """{content, hook} exemplars for the category (and topic when given)."""
        if category is None:
            return []
        stmt = select(PopularPost).where(
            PopularPost.organization_id == organization_id,
            PopularPost.category == category,
        )
        if topic is not None:
            stmt = stmt.where(PopularPost.topic == topic)
        r = await self.session.execute(stmt.order_by(PopularPost.id))
        return [{"content": p.content, "hook": p.hook} for p in r.scalars().all()]

    async def find_free_datetime(self, organization_id: str, now: datetime | None = None) -> datetime:
        """
        Next posting slot (UTC) strictly after now that holds no post of the organization.

        Days are walked from today; each day offers the configured posting times
        (minutes after midnight). Falls back to now + 1 day when the window is full.
        """
        now = _as_utc(now or datetime.now(timezone.utc))
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        window_end = start_of_today + timedelta(days=SEARCH_WINDOW_DAYS)

        r = await self.session.execute(
            select(Post.publish_date).where(
                Post.organization_id == organization_id,
                Post.deleted_at.is_(None),
                Post.publish_date >= start_of_today,
                Post.publish_date < window_end,
            )
        )
        occupied = {_as_utc(d).replace(second=0, microsecond=0) for d in r.scalars().all()}

        for day in range(SEARCH_WINDOW_DAYS):
            base = start_of_today + timedelta(days=day)
            for minutes in self.posting_times:
                candidate = base + timedelta(minutes=minutes)
                if candidate <= now or candidate in occupied:
                    continue
                return candidate

        logger.warning("free_slot_window_exhausted", organization_id=organization_id)
        return now + timedelta(days=1)

    async def create_post(
        self,
        organization_id: str,
        content: str,
        publish_date: datetime,
        integration_id: int | None = None,
        media: list[Any] | None = None,
        settings: dict[str, Any] | None = None,
        group_id: str | None = None,
    ) -> Post:
        post = Post(
            organization_id=organization_id,
            integration_id=integration_id,
            content=content,
            media=media,
            settings=settings,
            publish_date=publish_date,
        )
        if group_id:
            post.group_id = group_id
        self.session.add(post)
        await self.session.flush()
        return post
