"""Collaborators handed to workflow nodes through the run config."""
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, TypeVar

from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableConfig
from pydantic import BaseModel

from postflow.errors import WorkflowError
from postflow.services.gemini_service import Tool
from postflow.services.media_service import MediaService
from postflow.services.posts_service import PostsService
from postflow.services.prompt_templates_service import PromptTemplatesService
from postflow.services.storage import LocalStorage

T = TypeVar("T", bound=BaseModel)

DEPS_KEY = "deps"


class GenerativeModel(Protocol):
    async def run_with_tools(self, prompt: str, tools: Sequence[Tool]) -> AIMessage: ...

    async def extract(self, prompt: str, schema: type[T]) -> T: ...

    async def generate_image(self, prompt: str) -> bytes: ...


@dataclass
class WorkflowDeps:
    model: GenerativeModel
    templates: PromptTemplatesService
    posts: PostsService
    media: MediaService
    storage: LocalStorage
    tools: list[Any] = field(default_factory=list)

    def as_config(self) -> RunnableConfig:
        return {"configurable": {DEPS_KEY: self}}


def get_deps(config: RunnableConfig | None) -> WorkflowDeps:
    deps = ((config or {}).get("configurable") or {}).get(DEPS_KEY)
    if not isinstance(deps, WorkflowDeps):
        raise WorkflowError("Workflow dependencies missing from run config")
    return deps
