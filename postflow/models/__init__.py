"""SQLAlchemy and Pydantic models."""
from postflow.models.db_models import (
    Integration,
    Media,
    PopularPost,
    Post,
    PromptTemplate,
    init_db,
)
from postflow.models.schemas import (
    GeneratorRequest,
    MediaFile,
    PostFormat,
    PromptTemplateCreate,
    PromptTemplateOut,
    PromptTemplateUpdate,
    PublishItem,
    PublishRequest,
    TemplateKey,
    Tone,
    VideoMetadata,
    VideoValidation,
)

__all__ = [
    "Integration",
    "Media",
    "PopularPost",
    "Post",
    "PromptTemplate",
    "init_db",
    "GeneratorRequest",
    "MediaFile",
    "PostFormat",
    "PromptTemplateCreate",
    "PromptTemplateOut",
    "PromptTemplateUpdate",
    "PublishItem",
    "PublishRequest",
    "TemplateKey",
    "Tone",
    "VideoMetadata",
    "VideoValidation",
]
