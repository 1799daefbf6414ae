"""Image Agent: one picture per content item, then upload and media records."""
import asyncio

from langchain_core.runnables import RunnableConfig

from postflow.services.gemini_service import image_data_url
from postflow.utils.logging import get_logger
from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState

logger = get_logger(__name__)


async def generate_picture_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Concurrent generation; result order matches item order."""
    deps = get_deps(config)
    items = state.get("content_items") or []

    async def _one(item: dict) -> dict:
        if not item.get("prompt"):
            return item
        png = await deps.model.generate_image(item["prompt"])
        return {**item, "image": image_data_url(png)}

    new_items = await asyncio.gather(*(_one(i) for i in items))
    logger.info("pictures_generated", count=sum(1 for i in new_items if i.get("image")))
    return {"content_items": list(new_items)}


async def upload_pictures_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    """Upload concurrently, then save media rows in item order (the DB session is not shared across tasks)."""
    deps = get_deps(config)
    items = state.get("content_items") or []

    async def _upload(item: dict) -> str | None:
        return await deps.storage.upload_simple(item["image"]) if item.get("image") else None

    paths = await asyncio.gather(*(_upload(i) for i in items))
    uploaded = [(p.rsplit("/", 1)[-1], p) for p in paths if p]
    records = iter(await deps.media.save_files(state["organization_id"], uploaded))

    new_items = []
    for item, path in zip(items, paths):
        if path is None:
            new_items.append(item)
            continue
        media = next(records)
        new_items.append({**item, "image": media.id, "image_path": media.path})
    return {"content_items": new_items}
