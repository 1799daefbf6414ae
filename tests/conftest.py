"""Pytest fixtures for postflow tests."""
from typing import Any

import pytest
import pytest_asyncio
from langchain_core.messages import AIMessage
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from postflow.models.db_models import Base
from postflow.services.media_service import MediaService
from postflow.services.posts_service import PostsService
from postflow.services.prompt_templates_service import PromptTemplatesService
from postflow.services.storage import LocalStorage
from postflow.workflow.deps import WorkflowDeps

FIXED_DATE = "2026-01-10T09:00:00+00:00"


# --- Database Fixtures ---

@pytest_asyncio.fixture
async def engine(tmp_path):
    """SQLite engine with all tables created."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as s:
        yield s


@pytest.fixture
def templates(session):
    """Template service with a frozen clock."""
    return PromptTemplatesService(session, clock=lambda: FIXED_DATE)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "storage", "/uploads")


# --- Model Fixtures ---

class FakeModel:
    """Records prompts and returns canned results per schema."""

    def __init__(self, outputs: dict[type, BaseModel] | None = None, tool_calls: list[dict] | None = None):
        self.outputs = outputs or {}
        self.tool_calls = tool_calls or []
        self.prompts: list[tuple[str, str]] = []
        self.image_prompts: list[str] = []

    async def run_with_tools(self, prompt: str, tools: Any) -> AIMessage:
        self.prompts.append(("research", prompt))
        return AIMessage(content="", tool_calls=self.tool_calls)

    async def extract(self, prompt: str, schema: type[BaseModel]) -> BaseModel:
        self.prompts.append((schema.__name__, prompt))
        return self.outputs[schema]

    async def generate_image(self, prompt: str) -> bytes:
        self.image_prompts.append(prompt)
        return b"\x89PNG-" + prompt.encode()


class FakeSearchTool:
    name = "web_search"
    description = "search"
    parameters = {"query": "query"}

    def __init__(self, answer: str = '[{"title": "t", "url": "u", "content": "remote work research"}]'):
        self.answer = answer
        self.queries: list[str] = []

    async def run(self, query: str, **_: Any) -> str:
        self.queries.append(query)
        return self.answer


@pytest.fixture
def make_deps(session, templates, storage):
    """Factory: WorkflowDeps over the test session with the given model and tools."""

    def _make(model: Any, tools: list | None = None) -> WorkflowDeps:
        return WorkflowDeps(
            model=model,
            templates=templates,
            posts=PostsService(session),
            media=MediaService(session, storage),
            storage=storage,
            tools=tools or [],
        )

    return _make
