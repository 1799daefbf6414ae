"""API route modules."""
from postflow.routes.analytics import router as analytics_router
from postflow.routes.generate import router as generate_router
from postflow.routes.media import router as media_router
from postflow.routes.prompt_templates import router as prompt_templates_router
from postflow.routes.publish import router as publish_router
from postflow.routes.storage import router as storage_router

__all__ = [
    "analytics_router",
    "generate_router",
    "media_router",
    "prompt_templates_router",
    "publish_router",
    "storage_router",
]
