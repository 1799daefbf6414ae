"""Content Agent: post body items for the hook, then normalization to a list."""
from langchain_core.runnables import RunnableConfig

from postflow.errors import WorkflowError
from postflow.models.schemas import TemplateKey, content_schema
from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState, first_request


async def generate_content_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    deps = get_deps(config)
    key = TemplateKey(state["template_key"])
    prompt = await deps.templates.get_content_prompt(
        state["organization_id"],
        key.format,
        key.tone,
        {
            "request": first_request(state),
            "research": state.get("research_result", ""),
            "hook": state.get("hook", ""),
        },
    )
    schema = content_schema(bool(state.get("wants_image")), key.format)
    out = await deps.model.extract(prompt, schema)
    return {"content_items": out.model_dump(exclude_none=True)["content"]}


async def normalize_content_array_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """one_* formats hold exactly one item, thread_* formats at least two."""
    key = TemplateKey(state["template_key"])
    items = state.get("content_items")
    if isinstance(items, dict):
        items = [items]
    items = list(items or [])

    if key.format.is_thread:
        if len(items) < 2:
            raise WorkflowError(f"{key.value} requires at least 2 content items, got {len(items)}")
    elif len(items) != 1:
        raise WorkflowError(f"{key.value} requires exactly 1 content item, got {len(items)}")
    return {"content_items": items}
