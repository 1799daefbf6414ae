"""LangGraph agents in the content generation workflow."""
from postflow.agents.research_agent import research_tool_call_agent, save_research_agent, start_agent
from postflow.agents.classifier_agent import find_category_agent, find_popular_posts_agent, find_topic_agent
from postflow.agents.hook_agent import generate_hook_agent
from postflow.agents.content_agent import generate_content_agent, normalize_content_array_agent
from postflow.agents.image_agent import generate_picture_agent, upload_pictures_agent
from postflow.agents.scheduler_agent import resolve_post_datetime_agent

__all__ = [
    "start_agent",
    "research_tool_call_agent",
    "save_research_agent",
    "find_category_agent",
    "find_topic_agent",
    "find_popular_posts_agent",
    "generate_hook_agent",
    "generate_content_agent",
    "normalize_content_array_agent",
    "generate_picture_agent",
    "upload_pictures_agent",
    "resolve_post_datetime_agent",
]
