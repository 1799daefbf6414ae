"""Classifier Agent: category, topic and popular-post exemplars for the research."""
from langchain_core.runnables import RunnableConfig

from postflow.models.schemas import CategoryOutput, TopicOutput
from postflow.utils.logging import get_logger
from postflow.workflow.deps import get_deps
from postflow.workflow.state import WorkflowState

logger = get_logger(__name__)

CATEGORY_PROMPT = """You are an assistant that gets a text that will be later summarized into a social media post
and classify it to one of the following categories: {categories}
text: {text}"""

TOPIC_PROMPT = """You are an assistant that gets a text that will be later summarized into a social media post
and classify it to one of the following topics: {topics}
text: {text}"""


async def find_category_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    deps = get_deps(config)
    org_id = state["organization_id"]
    categories = await deps.posts.find_all_existing_categories(org_id)
    if not categories:
        # Nothing to classify into; topic and exemplars are skipped downstream
        logger.info("no_categories_for_organization", organization_id=org_id)
        return {"category": None}

    out = await deps.model.extract(
        CATEGORY_PROMPT.format(categories=", ".join(categories), text=state.get("research_result", "")),
        CategoryOutput,
    )
    return {"category": out.category}


async def find_topic_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    category = state.get("category")
    if category is None:
        return {"topic": None}

    deps = get_deps(config)
    topics = await deps.posts.find_all_existing_topics_of_category(state["organization_id"], category)
    if not topics:
        return {"topic": None}

    out = await deps.model.extract(
        TOPIC_PROMPT.format(topics=", ".join(topics), text=state.get("research_result", "")),
        TopicOutput,
    )
    return {"topic": out.topic}


async def find_popular_posts_agent(state: WorkflowState, config: RunnableConfig) -> dict:
    deps = get_deps(config)
    posts = await deps.posts.find_popular_posts(state["organization_id"], state.get("category"), state.get("topic"))
    return {"popular_posts": posts}
