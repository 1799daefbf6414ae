"""Tests for structured output schemas, parsing and the Gemini facade."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from postflow.errors import SchemaValidationError
from postflow.models.schemas import (
    GeneratorRequest,
    HookOutput,
    PostFormat,
    SinglePictureContent,
    SinglePostContent,
    TemplateKey,
    ThreadContent,
    ThreadPictureContent,
    content_schema,
)
from postflow.services.gemini_service import GeminiService, parse_structured
from postflow.services.search_service import TavilySearch, build_search_tools
from postflow.config import Settings


class TestContentSchema:
    """content_schema(wants_image, format)."""

    @pytest.mark.parametrize(
        "wants_image,fmt,expected",
        [
            (False, PostFormat.ONE_SHORT, SinglePostContent),
            (True, PostFormat.ONE_LONG, SinglePictureContent),
            (False, PostFormat.THREAD_SHORT, ThreadContent),
            (True, PostFormat.THREAD_LONG, ThreadPictureContent),
        ],
    )
    def test_selection(self, wants_image, fmt, expected):
        assert content_schema(wants_image, fmt) is expected

    def test_thread_requires_two_items(self):
        with pytest.raises(ValidationError):
            ThreadContent.model_validate({"content": [{"content": "only one"}]})

    def test_picture_items_require_prompt(self):
        with pytest.raises(ValidationError):
            SinglePictureContent.model_validate({"content": {"content": "text"}})

    def test_template_key_split(self):
        assert TemplateKey.THREAD_SHORT_COMPANY.format is PostFormat.THREAD_SHORT
        assert TemplateKey.THREAD_SHORT_COMPANY.tone.value == "company"


class TestParseStructured:
    """Local validation of model JSON."""

    def test_plain_json(self):
        assert parse_structured('{"hook": "Stop scrolling"}', HookOutput).hook == "Stop scrolling"

    def test_code_fence_is_stripped(self):
        text = '```json\n{"hook": "fenced"}\n```'
        assert parse_structured(text, HookOutput).hook == "fenced"

    def test_invalid_shape_raises(self):
        with pytest.raises(SchemaValidationError) as exc:
            parse_structured('{"content": [{"content": "one"}]}', ThreadContent)
        assert exc.value.schema_name == "ThreadContent"

    def test_empty_raises(self):
        with pytest.raises(SchemaValidationError):
            parse_structured(None, HookOutput)


class TestGeneratorRequest:
    """POST /generate body validation."""

    def test_aliases(self):
        body = GeneratorRequest.model_validate(
            {"research": "Remote work tips for teams", "isPicture": True, "templateKey": "thread_long_company"}
        )
        assert body.is_picture is True
        assert body.template_key is TemplateKey.THREAD_LONG_COMPANY

    def test_research_min_length(self):
        with pytest.raises(ValidationError):
            GeneratorRequest.model_validate({"research": "short", "isPicture": False, "templateKey": "one_short_personal"})

    def test_unknown_template_key(self):
        with pytest.raises(ValidationError):
            GeneratorRequest.model_validate(
                {"research": "long enough research", "isPicture": False, "templateKey": "two_short_personal"}
            )


class TestGeminiService:
    """Response mapping with a stubbed google-genai client."""

    def _service(self, response):
        svc = GeminiService(api_key="k", text_model="m", image_model="imagen-4.0-generate-001")
        svc._client = MagicMock()
        svc._client.models.generate_content.return_value = response
        return svc

    @pytest.mark.asyncio
    async def test_function_calls_become_tool_calls(self):
        response = SimpleNamespace(
            function_calls=[SimpleNamespace(name="web_search", args={"query": "remote work"}, id=None)],
            parts=[],
        )
        msg = await self._service(response).run_with_tools("research this", [TavilySearch("key")])
        assert msg.tool_calls[0]["name"] == "web_search"
        assert msg.tool_calls[0]["args"] == {"query": "remote work"}
        assert msg.tool_calls[0]["id"]

    @pytest.mark.asyncio
    async def test_extract_validates(self):
        response = SimpleNamespace(function_calls=None, parts=[SimpleNamespace(text='{"hook": "Hi"}')])
        out = await self._service(response).extract("p", HookOutput)
        assert out == HookOutput(hook="Hi")

    @pytest.mark.asyncio
    async def test_extract_raises_on_bad_output(self):
        response = SimpleNamespace(function_calls=None, parts=[SimpleNamespace(text='{"nope": 1}')])
        with pytest.raises(SchemaValidationError):
            await self._service(response).extract("p", HookOutput)


class TestSearchTool:
    """Tavily web search tool."""

    def test_disabled_without_key(self):
        assert build_search_tools(Settings(tavily_api_key="")) == []

    def test_enabled_with_key(self):
        tools = build_search_tools(Settings(tavily_api_key="key", tavily_max_results=5))
        assert [t.name for t in tools] == ["web_search"]
        assert tools[0].max_results == 5

    @pytest.mark.asyncio
    async def test_run_returns_compact_results(self):
        tool = MagicMock()
        tool.ainvoke = AsyncMock(return_value=[{"title": "T", "url": "https://x", "content": "C", "score": 0.9}])
        out = await TavilySearch("key", tool=tool).run(query="remote work")
        assert out == '[{"title": "T", "url": "https://x", "content": "C"}]'
        tool.ainvoke.assert_awaited_once_with({"query": "remote work"})

    @pytest.mark.asyncio
    async def test_error_string_raises(self):
        tool = MagicMock()
        tool.ainvoke = AsyncMock(return_value="HTTPError('401 Unauthorized')")
        with pytest.raises(RuntimeError, match="Web search failed"):
            await TavilySearch("key", tool=tool).run(query="x")
