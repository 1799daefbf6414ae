"""POST /generate: run the content workflow and stream state snapshots as NDJSON."""
import json

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from postflow.config import settings
from postflow.db import init_db
from postflow.errors import PostflowError
from postflow.models.schemas import GeneratorRequest
from postflow.routes.dependencies import get_organization_id
from postflow.services.gemini_service import GeminiService
from postflow.services.media_service import MediaService
from postflow.services.posts_service import PostsService
from postflow.services.prompt_templates_service import PromptTemplatesService
from postflow.services.search_service import build_search_tools
from postflow.services.storage import create_storage
from postflow.services.video_format_service import VideoFormatService
from postflow.utils.logging import get_logger
from postflow.workflow.deps import WorkflowDeps
from postflow.workflow.graph import stream_generation

logger = get_logger(__name__)

router = APIRouter(prefix="/generate", tags=["generate"])


def build_workflow_deps(session: AsyncSession) -> WorkflowDeps:
    storage = create_storage(settings)
    return WorkflowDeps(
        model=GeminiService.from_settings(settings),
        templates=PromptTemplatesService(session),
        posts=PostsService(session, settings.posting_times),
        media=MediaService(session, storage, VideoFormatService(settings.ffmpeg_path, settings.ffprobe_path)),
        storage=storage,
        tools=build_search_tools(settings),
    )


@router.post("")
async def generate_post(
    body: GeneratorRequest,
    organization_id: str = Depends(get_organization_id),
):
    """
    Body is validated before anything runs (422 on malformed input).

    Each line of the response is one state snapshot. A failing step ends the
    stream with a final {"error": ..., "type": ...} line and nothing is committed.
    """
    factory = init_db()

    async def _lines():
        # Session lives as long as the stream, not the request handler
        async with factory() as session:
            try:
                async for snapshot in stream_generation(build_workflow_deps(session), organization_id, body):
                    yield json.dumps(snapshot, ensure_ascii=False, default=str) + "\n"
                await session.commit()
            except PostflowError as e:
                await session.rollback()
                logger.warning("generate_flow_failed", organization_id=organization_id, error=str(e))
                yield json.dumps({"error": str(e), "type": type(e).__name__}) + "\n"
            except Exception as e:
                await session.rollback()
                logger.exception("generate_flow_failed", organization_id=organization_id, error=str(e))
                yield json.dumps({"error": str(e), "type": "InternalError"}) + "\n"

    return StreamingResponse(_lines(), media_type="application/x-ndjson")
