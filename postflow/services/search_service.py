"""Web search tool used by the research step (Tavily through langchain-community)."""
import json
from typing import Any

from langchain_community.tools.tavily_search import TavilySearchResults
from langchain_community.utilities.tavily_search import TavilySearchAPIWrapper

from postflow.config import Settings
from postflow.utils.logging import get_logger

logger = get_logger(__name__)


class TavilySearch:
    """Search tool the research model can call by name."""

    name = "web_search"
    description = "Search the internet for recent, factual information about a topic. Returns the top results."
    parameters = {
        "query": "Search query in plain words",
    }

    def __init__(self, api_key: str, max_results: int = 3, tool: Any = None):
        self.max_results = max_results
        self._tool = tool or TavilySearchResults(
            max_results=max_results,
            api_wrapper=TavilySearchAPIWrapper(tavily_api_key=api_key),
        )

    async def run(self, query: str, **_: Any) -> str:
        """Return results as a JSON array of {title, url, content}."""
        raw = await self._tool.ainvoke({"query": query})
        if isinstance(raw, str):
            # The tool reports API failures as a plain string
            raise RuntimeError(f"Web search failed: {raw}")
        results = [
            {"title": r.get("title", ""), "url": r.get("url", ""), "content": r.get("content", "")}
            for r in raw or []
        ]
        logger.info("web_search_done", query=query[:120], results=len(results))
        return json.dumps(results, ensure_ascii=False)


def build_search_tools(settings: Settings) -> list[TavilySearch]:
    """Empty when no search capability is configured."""
    if not settings.tavily_api_key:
        return []
    return [TavilySearch(settings.tavily_api_key, max_results=settings.tavily_max_results)]
