"""Compiled LangGraph: research -> classify -> hook -> content -> (pictures) -> free slot -> END."""
from datetime import date, datetime
from typing import Any, AsyncIterator

from langchain_core.messages import BaseMessage, HumanMessage
from langgraph.graph import END, START, StateGraph

from postflow.agents.classifier_agent import find_category_agent, find_popular_posts_agent, find_topic_agent
from postflow.agents.content_agent import generate_content_agent, normalize_content_array_agent
from postflow.agents.hook_agent import generate_hook_agent
from postflow.agents.image_agent import generate_picture_agent, upload_pictures_agent
from postflow.agents.research_agent import research_tool_call_agent, save_research_agent, start_agent
from postflow.agents.scheduler_agent import resolve_post_datetime_agent
from postflow.models.schemas import GeneratorRequest
from postflow.utils.logging import get_logger
from postflow.workflow.deps import WorkflowDeps
from postflow.workflow.state import WorkflowState

logger = get_logger(__name__)

NODES = {
    "start": start_agent,
    "research-tool-call": research_tool_call_agent,
    "save-research": save_research_agent,
    "find-category": find_category_agent,
    "find-topic": find_topic_agent,
    "find-popular-posts": find_popular_posts_agent,
    "generate-hook": generate_hook_agent,
    "generate-content": generate_content_agent,
    "normalize-content-array": normalize_content_array_agent,
    "generate-picture": generate_picture_agent,
    "upload-pictures": upload_pictures_agent,
    "resolve-post-datetime": resolve_post_datetime_agent,
}

# Unconditional edges; normalize-content-array branches via route_after_content
GENERATION_EDGES: list[tuple[str, str]] = [
    (START, "start"),
    ("start", "research-tool-call"),
    ("research-tool-call", "save-research"),
    ("save-research", "find-category"),
    ("find-category", "find-topic"),
    ("find-topic", "find-popular-posts"),
    ("find-popular-posts", "generate-hook"),
    ("generate-hook", "generate-content"),
    ("generate-content", "normalize-content-array"),
    ("generate-picture", "upload-pictures"),
    ("upload-pictures", "resolve-post-datetime"),
    ("resolve-post-datetime", END),
]


def route_after_content(state: WorkflowState) -> str:
    return "generate-picture" if state.get("wants_image") else "resolve-post-datetime"


def build_generation_graph():
    """Build and compile the generation graph."""
    builder = StateGraph(WorkflowState)
    for name, node in NODES.items():
        builder.add_node(name, node)
    for source, target in GENERATION_EDGES:
        builder.add_edge(source, target)
    builder.add_conditional_edges(
        "normalize-content-array",
        route_after_content,
        ["generate-picture", "resolve-post-datetime"],
    )
    return builder.compile()


_graph = None


def get_graph():
    global _graph
    if _graph is None:
        _graph = build_generation_graph()
    return _graph


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseMessage):
        out = {"type": value.type, "content": value.content}
        if getattr(value, "tool_calls", None):
            out["tool_calls"] = value.tool_calls
        return out
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def snapshot_to_dict(snapshot: dict[str, Any]) -> dict[str, Any]:
    """Full state snapshot with messages flattened to {type, content}."""
    return _jsonable(dict(snapshot))


async def stream_generation(
    deps: WorkflowDeps, organization_id: str, body: GeneratorRequest
) -> AsyncIterator[dict[str, Any]]:
    """Run the workflow once; yield a state snapshot after every step, in execution order."""
    initial: WorkflowState = {
        "messages": [HumanMessage(content=body.research)],
        "organization_id": organization_id,
        "template_key": body.template_key.value,
        "wants_image": body.is_picture,
    }
    logger.info("generation_started", organization_id=organization_id, template_key=body.template_key.value)
    async for snapshot in get_graph().astream(initial, config=deps.as_config(), stream_mode="values"):
        yield snapshot_to_dict(snapshot)
    logger.info("generation_finished", organization_id=organization_id)
