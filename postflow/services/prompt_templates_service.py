"""Per-tenant prompt templates: CRUD, default seeding and placeholder resolution."""
import re
from datetime import datetime
from typing import Any, Callable, Mapping

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.errors import ImagePromptNotConfigured, TemplateNotFound
from postflow.models.db_models import PromptTemplate, utcnow
from postflow.models.schemas import PromptStage, PromptTemplateCreate, PromptTemplateUpdate
from postflow.services.default_templates import DEFAULT_TEMPLATES
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{([^}]*)\}\}")


def current_date() -> str:
    """Local time, ISO-8601 with offset."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def replace_placeholders(template: str, placeholders: Mapping[str, Any]) -> str:
    """
    Substitute {{name}} tokens in one pass, then strip whatever tokens remain.

    Values are inserted verbatim and never re-scanned for other keys. Stripping
    repeats until no token is left, so the result never contains {{...}}.
    """

    def _sub(match: re.Match) -> str:
        value = placeholders.get(match.group(1))
        return "" if value is None else str(value)

    result = PLACEHOLDER_RE.sub(_sub, template)
    while PLACEHOLDER_RE.search(result):
        result = PLACEHOLDER_RE.sub("", result)
    return result


def _insert_ignore_duplicates(session: AsyncSession):
    """INSERT ... ON CONFLICT DO NOTHING for the bound dialect."""
    dialect = session.bind.dialect.name if session.bind is not None else "postgresql"
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        from sqlalchemy.dialects.postgresql import insert
    return insert(PromptTemplate).on_conflict_do_nothing()


class PromptTemplatesService:
    """Template lookups are scoped by (organization_id, template_key); soft-deleted rows are ignored."""

    def __init__(self, session: AsyncSession, clock: Callable[[], str] = current_date):
        self.session = session
        self._clock = clock

    # ----- Queries -----
    async def get_template_by_key(self, organization_id: str, template_key: str) -> PromptTemplate | None:
        """Active, non-deleted template for the key."""
        r = await self.session.execute(
            select(PromptTemplate)
            .where(
                PromptTemplate.organization_id == organization_id,
                PromptTemplate.template_key == template_key,
                PromptTemplate.deleted_at.is_(None),
                PromptTemplate.active.is_(True),
            )
            .limit(1)
        )
        return r.scalar_one_or_none()

    async def get_all_templates_by_organization(self, organization_id: str) -> list[PromptTemplate]:
        r = await self.session.execute(
            select(PromptTemplate)
            .where(
                PromptTemplate.organization_id == organization_id,
                PromptTemplate.deleted_at.is_(None),
            )
            .order_by(PromptTemplate.template_key.asc())
        )
        return list(r.scalars().all())

    async def count_templates(self, organization_id: str) -> int:
        r = await self.session.execute(
            select(func.count(PromptTemplate.id)).where(
                PromptTemplate.organization_id == organization_id,
                PromptTemplate.deleted_at.is_(None),
            )
        )
        return int(r.scalar_one())

    # ----- Writes -----
    async def create_template(self, organization_id: str, data: PromptTemplateCreate) -> PromptTemplate:
        template = PromptTemplate(
            organization_id=organization_id,
            template_key=data.template_key.value,
            name=data.name,
            research_prompt=data.research_prompt,
            hook_prompt=data.hook_prompt,
            content_prompt=data.content_prompt,
            image_prompt=data.image_prompt,
        )
        self.session.add(template)
        await self.session.flush()
        return template

    async def update_template(
        self, organization_id: str, template_key: str, data: PromptTemplateUpdate | Mapping[str, Any]
    ) -> int:
        """Partial update of the live row(s). Returns the number of rows touched."""
        values = data.model_dump(exclude_unset=True) if isinstance(data, PromptTemplateUpdate) else dict(data)
        values.pop("template_key", None)
        if not values:
            return 0
        values["updated_at"] = utcnow()
        r = await self.session.execute(
            update(PromptTemplate)
            .where(
                PromptTemplate.organization_id == organization_id,
                PromptTemplate.template_key == template_key,
                PromptTemplate.deleted_at.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return r.rowcount or 0

    async def delete_template(self, organization_id: str, template_key: str) -> int:
        """Soft delete."""
        r = await self.session.execute(
            update(PromptTemplate)
            .where(
                PromptTemplate.organization_id == organization_id,
                PromptTemplate.template_key == template_key,
                PromptTemplate.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        return r.rowcount or 0

    async def create_default_templates_for_organization(self, organization_id: str) -> None:
        """Bulk insert of the default set; keys that already exist are skipped."""
        rows = [{**template, "organization_id": organization_id} for template in DEFAULT_TEMPLATES.values()]
        await self.session.execute(_insert_ignore_duplicates(self.session), rows)
        logger.info("default_templates_seeded", organization_id=organization_id, count=len(rows))

    async def ensure_default_templates_exist(self, organization_id: str) -> None:
        """Seed defaults only when the organization has no templates at all."""
        if await self.count_templates(organization_id) == 0:
            await self.create_default_templates_for_organization(organization_id)

    # ----- Defaults -----
    @staticmethod
    def get_default_template(template_key: str) -> dict[str, str] | None:
        template = DEFAULT_TEMPLATES.get(template_key)
        return dict(template) if template else None

    async def reset_template_to_default(self, organization_id: str, template_key: str) -> int:
        default = self.get_default_template(template_key)
        if default is None:
            raise TemplateNotFound(template_key)
        return await self.update_template(organization_id, template_key, default)

    # ----- Resolution -----
    async def resolve(
        self,
        organization_id: str,
        post_format: str,
        tone: str,
        stage: PromptStage,
        placeholders: Mapping[str, Any] | None = None,
    ) -> str:
        """Render the stage prompt of the tenant's template; currentDate is always recomputed."""
        template_key = f"{_value(post_format)}_{_value(tone)}"
        template = await self.get_template_by_key(organization_id, template_key)
        if template is None:
            raise TemplateNotFound(template_key)

        body = getattr(template, stage.field_name)
        if stage is PromptStage.IMAGE and not body:
            raise ImagePromptNotConfigured(template_key)

        return replace_placeholders(body, {**(placeholders or {}), "currentDate": self._clock()})

    async def get_research_prompt(self, organization_id: str, post_format: str, tone: str, placeholders: Mapping[str, Any]) -> str:
        return await self.resolve(organization_id, post_format, tone, PromptStage.RESEARCH, placeholders)

    async def get_hook_prompt(self, organization_id: str, post_format: str, tone: str, placeholders: Mapping[str, Any]) -> str:
        return await self.resolve(organization_id, post_format, tone, PromptStage.HOOK, placeholders)

    async def get_content_prompt(self, organization_id: str, post_format: str, tone: str, placeholders: Mapping[str, Any]) -> str:
        return await self.resolve(organization_id, post_format, tone, PromptStage.CONTENT, placeholders)

    async def get_image_prompt(self, organization_id: str, post_format: str, tone: str, placeholders: Mapping[str, Any]) -> str:
        return await self.resolve(organization_id, post_format, tone, PromptStage.IMAGE, placeholders)


def _value(v: Any) -> str:
    return getattr(v, "value", v)
