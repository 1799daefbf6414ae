"""Shared route dependencies and error translation."""
from fastapi import Header, HTTPException

from postflow.config import settings
from postflow.errors import (
    PostflowError,
    ProviderError,
    PublishError,
    SchemaValidationError,
    TemplateNotFound,
    VideoAdmissionError,
)
from postflow.services.storage import LocalStorage, create_storage


async def get_organization_id(x_organization_id: str = Header(..., min_length=1)) -> str:
    """Tenant id from the X-Organization-Id header; authentication happens upstream."""
    return x_organization_id


def get_storage() -> LocalStorage:
    return create_storage(settings)


def http_error(exc: PostflowError) -> HTTPException:
    if isinstance(exc, TemplateNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (SchemaValidationError, VideoAdmissionError)):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (ProviderError, PublishError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
