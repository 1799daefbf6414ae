"""Pydantic schemas for API, model extraction and workflow state."""
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ----- Template keys -----
class PostFormat(str, Enum):
    ONE_SHORT = "one_short"
    ONE_LONG = "one_long"
    THREAD_SHORT = "thread_short"
    THREAD_LONG = "thread_long"

    @property
    def is_thread(self) -> bool:
        return self in (PostFormat.THREAD_SHORT, PostFormat.THREAD_LONG)


class Tone(str, Enum):
    PERSONAL = "personal"
    COMPANY = "company"


class TemplateKey(str, Enum):
    ONE_SHORT_PERSONAL = "one_short_personal"
    ONE_SHORT_COMPANY = "one_short_company"
    ONE_LONG_PERSONAL = "one_long_personal"
    ONE_LONG_COMPANY = "one_long_company"
    THREAD_SHORT_PERSONAL = "thread_short_personal"
    THREAD_SHORT_COMPANY = "thread_short_company"
    THREAD_LONG_PERSONAL = "thread_long_personal"
    THREAD_LONG_COMPANY = "thread_long_company"

    @property
    def format(self) -> PostFormat:
        # 'one_short_personal' -> 'one_short'
        return PostFormat(self.value.rsplit("_", 1)[0])

    @property
    def tone(self) -> Tone:
        return Tone(self.value.rsplit("_", 1)[1])


class PromptStage(str, Enum):
    RESEARCH = "research"
    HOOK = "hook"
    CONTENT = "content"
    IMAGE = "image"

    @property
    def field_name(self) -> str:
        return f"{self.value}_prompt"


# ----- Structured model output -----
class CategoryOutput(BaseModel):
    category: str = Field(description="The category for the post")


class TopicOutput(BaseModel):
    topic: str = Field(description="The topic for the post")


class HookOutput(BaseModel):
    hook: str = Field(description='Hook for the new post, don\'t take it from "the request of the user"')


class PostItem(BaseModel):
    content: str = Field(description="Content for the new post")
    website: str | None = Field(
        default=None,
        description=(
            "Website for the new post if exists. If the post presents a brand, the link must be the root "
            "domain of the brand or omitted; the url should contain the brand name"
        ),
    )


class PictureItem(PostItem):
    prompt: str = Field(
        description=(
            "Prompt to generate a picture for this post later, make sure it doesn't contain brand names "
            "and make it very descriptive in terms of style"
        )
    )


class SinglePostContent(BaseModel):
    content: PostItem


class SinglePictureContent(BaseModel):
    content: PictureItem


class ThreadContent(BaseModel):
    content: list[PostItem] = Field(min_length=2, description="Content for the new post")


class ThreadPictureContent(BaseModel):
    content: list[PictureItem] = Field(min_length=2, description="Content for the new post")


def content_schema(wants_image: bool, post_format: PostFormat) -> type[BaseModel]:
    """Extraction schema for generate-content; thread formats require at least two items."""
    if post_format.is_thread:
        return ThreadPictureContent if wants_image else ThreadContent
    return SinglePictureContent if wants_image else SinglePostContent


# ----- Generation API -----
class GeneratorRequest(BaseModel):
    """Request body for POST /generate."""

    model_config = ConfigDict(populate_by_name=True)

    research: str = Field(min_length=10, description="What the post should be about")
    is_picture: bool = Field(alias="isPicture", description="Generate one image per content item")
    template_key: TemplateKey = Field(alias="templateKey")


# ----- Prompt templates API -----
class PromptTemplateCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_key: TemplateKey = Field(alias="templateKey")
    name: str
    research_prompt: str = Field(alias="researchPrompt")
    hook_prompt: str = Field(alias="hookPrompt")
    content_prompt: str = Field(alias="contentPrompt")
    image_prompt: str | None = Field(default=None, alias="imagePrompt")


class PromptTemplateUpdate(BaseModel):
    """Partial update; only fields that are set are written."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    research_prompt: str | None = Field(default=None, alias="researchPrompt")
    hook_prompt: str | None = Field(default=None, alias="hookPrompt")
    content_prompt: str | None = Field(default=None, alias="contentPrompt")
    image_prompt: str | None = Field(default=None, alias="imagePrompt")
    active: bool | None = None


class PromptTemplateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: str
    template_key: str
    name: str
    research_prompt: str
    hook_prompt: str
    content_prompt: str
    image_prompt: str | None
    active: bool
    created_at: datetime
    updated_at: datetime


# ----- Media -----
class MediaFile(BaseModel):
    """Immutable description of a local media file on its way to storage."""

    model_config = ConfigDict(frozen=True)

    path: str
    mime_type: str
    size: int
    display_name: str

    @property
    def is_video(self) -> bool:
        return self.mime_type in VIDEO_MIME_TYPES


VIDEO_MIME_TYPES = frozenset(
    {
        "video/mp4",
        "video/quicktime",
        "video/avi",
        "video/mov",
        "video/wmv",
        "video/flv",
        "video/webm",
    }
)


class MediaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    path: str
    created_at: datetime


class VideoMetadata(BaseModel):
    duration: float
    width: int
    height: int
    frame_rate: float
    aspect_ratio: str
    video_codec: str
    audio_codec: str
    bitrate: int
    file_size: int


class VideoValidation(BaseModel):
    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    metadata: VideoMetadata | None = None


# ----- Publishing -----
class PublishItemSettings(BaseModel):
    post_type: Literal["post", "story"] = "post"
    collaborators: list[str] = Field(default_factory=list)


class PublishItem(BaseModel):
    """One item of a publish batch. Items after the first become comments."""

    id: str
    message: str = ""
    media: list[str] = Field(default_factory=list, description="Public media URLs")
    settings: PublishItemSettings = Field(default_factory=PublishItemSettings)


class PublishSuccess(BaseModel):
    status: Literal["success"] = "success"
    request_item_id: str
    post_id: str
    permalink: str | None = None


class PublishFailure(BaseModel):
    status: Literal["failed"] = "failed"
    request_item_id: str
    reason: str


PublishResult = PublishSuccess | PublishFailure


class PublishRequest(BaseModel):
    """Request body for POST /publish."""

    integration_id: int
    items: list[PublishItem] = Field(min_length=1)
    allow_partial: bool = Field(default=False, description="Report per-item failures instead of aborting the batch")
    scheduled_at: datetime | None = Field(default=None, description="Queue for later; null = publish now")


class AnalyticsSeries(BaseModel):
    label: str
    data: list[dict[str, Any]] = Field(default_factory=list)
