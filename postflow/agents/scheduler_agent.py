"""Scheduler Agent: pick the next free publish slot for the organization."""
from langchain_core.runnables import RunnableConfig

from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState


async def resolve_post_datetime_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """
    Terminal step. The slot comes from the configured posting times and skips
    minutes already holding a post of the organization; see PostsService.find_free_datetime.
    """
    slot = await get_deps(config).posts.find_free_datetime(state["organization_id"])
    return {"scheduled_date": slot.isoformat()}
