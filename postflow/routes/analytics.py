"""GET /analytics/{integration_id}: Instagram insights for a connected account."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.config import settings
from postflow.db import get_db
from postflow.errors import PostflowError
from postflow.integrations.instagram_provider import InstagramProvider
from postflow.models.schemas import AnalyticsSeries
from postflow.routes.dependencies import get_organization_id, http_error
from postflow.routes.publish import load_integration

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/{integration_id}", response_model=list[AnalyticsSeries])
async def get_analytics(
    integration_id: int,
    days: int = Query(7, ge=1, le=90),
    organization_id: str = Depends(get_organization_id),
    session: AsyncSession = Depends(get_db),
):
    integration = await load_integration(session, organization_id, integration_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Integration not found")
    try:
        async with InstagramProvider.from_settings(settings) as provider:
            return await provider.analytics(integration.internal_id, integration.access_token, days)
    except PostflowError as e:
        raise http_error(e) from e
