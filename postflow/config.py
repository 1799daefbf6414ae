"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (parent of postflow/); .env is loaded from here so it works regardless of CWD
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gemini
    gemini_api_key: str = ""
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "imagen-4.0-generate-001"
    gemini_temperature: float = 0.7

    # Research tool. Leave empty to run research without web search.
    tavily_api_key: str = ""
    tavily_max_results: int = 3

    # Database (postgresql+asyncpg://...)
    database_url: str = ""

    @property
    def database_url_sync(self) -> str:
        """Sync URL for Alembic (replace +asyncpg with empty string)."""
        if not self.database_url:
            return ""
        return self.database_url.replace("+asyncpg", "") if "+asyncpg" in self.database_url else self.database_url

    # Storage
    storage_provider: str = "local"
    storage_path: str = "./storage"
    storage_public_url: str = "/uploads"

    # Instagram Graph API
    facebook_graph_host: str = "graph.facebook.com"
    graph_api_version: str = "v20.0"
    instagram_poll_interval: float = 3.0
    instagram_poll_error_backoff: float = 5.0
    instagram_poll_max_attempts: int = 40
    trusted_video_domains: list[str] = [
        "amazonaws.com",
        "cloudfront.net",
        "googleusercontent.com",
        "blob.core.windows.net",
        "digitaloceanspaces.com",
    ]

    # Publish slots, minutes after midnight UTC
    posting_times: list[int] = [120, 400, 700]

    # Video tooling
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # App
    log_level: str = "INFO"

    @property
    def storage_dir(self) -> Path:
        p = Path(self.storage_path)
        p.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def graph_base_url(self) -> str:
        return f"https://{self.facebook_graph_host}/{self.graph_api_version}"


settings = Settings()
