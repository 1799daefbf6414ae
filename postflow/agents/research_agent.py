"""Research Agent: research prompt with tools, tool execution, research capture."""
import asyncio

from langchain_core.messages import AIMessage, ToolMessage
from langchain_core.runnables import RunnableConfig

from postflow.errors import WorkflowError
from postflow.models.schemas import TemplateKey
from postflow.utils.logging import get_logger
from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState, latest_request, message_text

logger = get_logger(__name__)


async def start_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Seed templates if needed, then ask the model to research the request (it may call tools)."""
    deps = get_deps(config)
    org_id = state["organization_id"]
    key = TemplateKey(state["template_key"])

    await deps.templates.ensure_default_templates_exist(org_id)
    prompt = await deps.templates.get_research_prompt(
        org_id,
        key.format,
        key.tone,
        {"request": latest_request(state), "research": ""},
    )
    response = await deps.model.run_with_tools(prompt, deps.tools)
    return {"messages": [response]}


async def research_tool_call_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Run every tool call of the last AI message; one ToolMessage per call, in call order."""
    messages = state.get("messages") or []
    last = messages[-1] if messages else None
    calls = last.tool_calls if isinstance(last, AIMessage) else []
    if not calls:
        return {}

    tools = {t.name: t for t in get_deps(config).tools}
    for call in calls:
        if call["name"] not in tools:
            raise WorkflowError(f"Unknown tool requested by model: {call['name']}")

    outputs = await asyncio.gather(*(tools[c["name"]].run(**c["args"]) for c in calls))
    logger.info("research_tools_done", calls=len(calls))
    return {
        "messages": [
            ToolMessage(content=str(out), tool_call_id=c["id"], name=c["name"])
            for c, out in zip(calls, outputs)
        ]
    }


async def save_research_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    tool_outputs = [message_text(m) for m in state.get("messages") or [] if isinstance(m, ToolMessage)]
    return {"research_result": "\n".join(tool_outputs)}
