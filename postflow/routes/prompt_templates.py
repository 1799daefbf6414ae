"""Per-organization prompt templates: CRUD, defaults and reset."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.db import get_db
from postflow.errors import TemplateNotFound
from postflow.models.schemas import PromptTemplateCreate, PromptTemplateOut, PromptTemplateUpdate, TemplateKey
from postflow.routes.dependencies import get_organization_id, http_error
from postflow.services.prompt_templates_service import PromptTemplatesService
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/prompt-templates", tags=["prompt-templates"])


@router.get("", response_model=list[PromptTemplateOut])
async def list_templates(
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    return await PromptTemplatesService(session).get_all_templates_by_organization(organization_id)


@router.post("/initialize", response_model=list[PromptTemplateOut])
async def initialize_templates(
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    """Seed the default set when the organization has none."""
    svc = PromptTemplatesService(session)
    await svc.ensure_default_templates_exist(organization_id)
    await session.commit()
    return await svc.get_all_templates_by_organization(organization_id)


@router.get("/{template_key}", response_model=PromptTemplateOut)
async def get_template(
    template_key: TemplateKey,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    template = await PromptTemplatesService(session).get_template_by_key(organization_id, template_key.value)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.post("", response_model=PromptTemplateOut, status_code=201)
async def create_template(
    body: PromptTemplateCreate,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    try:
        template = await PromptTemplatesService(session).create_template(organization_id, body)
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Template already exists for this key") from e
    await session.refresh(template)
    return template


@router.put("/{template_key}", response_model=PromptTemplateOut)
async def update_template(
    template_key: TemplateKey,
    body: PromptTemplateUpdate,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    svc = PromptTemplatesService(session)
    if await svc.update_template(organization_id, template_key.value, body) == 0:
        if not await svc.get_template_by_key(organization_id, template_key.value):
            raise HTTPException(status_code=404, detail="Template not found")
    await session.commit()
    template = await svc.get_template_by_key(organization_id, template_key.value)
    if not template:
        # Deactivated by this update
        raise HTTPException(status_code=404, detail="Template is not active")
    return template


@router.delete("/{template_key}")
async def delete_template(
    template_key: TemplateKey,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    if await PromptTemplatesService(session).delete_template(organization_id, template_key.value) == 0:
        raise HTTPException(status_code=404, detail="Template not found")
    await session.commit()
    return {"deleted": template_key.value}


@router.get("/{template_key}/default")
async def get_default_template(template_key: TemplateKey):
    """Built-in default bodies for the key (tenant independent)."""
    default = PromptTemplatesService.get_default_template(template_key.value)
    if default is None:
        raise HTTPException(status_code=404, detail="No default template for key")
    return default


@router.post("/{template_key}/reset", response_model=PromptTemplateOut)
async def reset_template(
    template_key: TemplateKey,
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    svc = PromptTemplatesService(session)
    try:
        touched = await svc.reset_template_to_default(organization_id, template_key.value)
    except TemplateNotFound as e:
        raise http_error(e) from e
    if touched == 0:
        raise HTTPException(status_code=404, detail="Template not found")
    await session.commit()
    logger.info("template_reset", organization_id=organization_id, template_key=template_key.value)
    template = await svc.get_template_by_key(organization_id, template_key.value)
    if not template:
        raise HTTPException(status_code=404, detail="Template is not active")
    return template
