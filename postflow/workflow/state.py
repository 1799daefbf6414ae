"""LangGraph state schema for the content generation workflow."""
import operator
from typing import Annotated, Any, TypedDict

from langchain_core.messages import AnyMessage


class WorkflowState(TypedDict, total=False):
    """State passed between nodes. All keys optional for partial updates."""

    # Conversation; nodes return new messages and the reducer appends them
    messages: Annotated[list[AnyMessage], operator.add]

    # Fixed at run start
    organization_id: str
    template_key: str
    wants_image: bool

    # Research
    research_result: str

    # Classification
    category: str | None
    topic: str | None
    popular_posts: list[dict[str, str]]

    # Generation
    hook: str
    # dict for one_* formats until normalize-content-array, then always a list
    content_items: Any

    # Terminal step, ISO-8601 UTC
    scheduled_date: str


def message_text(message: AnyMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts
    return "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)


def first_request(state: WorkflowState) -> str:
    """The user's original request (first message)."""
    messages = state.get("messages") or []
    return message_text(messages[0]) if messages else ""


def latest_request(state: WorkflowState) -> str:
    messages = state.get("messages") or []
    return message_text(messages[-1]) if messages else ""
