"""Business logic services."""
from postflow.services.gemini_service import GeminiService
from postflow.services.media_service import MediaService
from postflow.services.posts_service import PostsService
from postflow.services.prompt_templates_service import PromptTemplatesService
from postflow.services.storage import LocalStorage, create_storage
from postflow.services.video_format_service import VideoFormatService

__all__ = [
    "GeminiService",
    "MediaService",
    "PostsService",
    "PromptTemplatesService",
    "LocalStorage",
    "create_storage",
    "VideoFormatService",
]
