"""Hook Agent: opening line of the post, inspired by the organization's popular hooks."""
from langchain_core.runnables import RunnableConfig

from postflow.models.schemas import HookOutput, TemplateKey
from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState, first_request


async def generate_hook_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    deps = get_deps(config)
    key = TemplateKey(state["template_key"])
    prompt = await deps.templates.get_hook_prompt(
        state["organization_id"],
        key.format,
        key.tone,
        {
            "request": first_request(state),
            "research": state.get("research_result", ""),
            "popularHooks": "\n".join(p["hook"] for p in state.get("popular_posts") or []),
        },
    )
    out = await deps.model.extract(prompt, HookOutput)
    return {"hook": out.hook}
