"""Gemini API: tool-calling research, schema-constrained extraction and image generation."""
import asyncio
import base64
import re
import uuid
from typing import Any, Protocol, Sequence, TypeVar

from langchain_core.messages import AIMessage
from pydantic import BaseModel, ValidationError

from postflow.config import Settings
from postflow.errors import ConfigurationError, SchemaValidationError, WorkflowError
from postflow.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

_IMAGEN_PREFIXES = ("imagen-4", "imagen-3")
_FALLBACK_IMAGE_MODELS = ("gemini-2.5-flash-image",)


class Tool(Protocol):
    name: str
    description: str
    parameters: dict[str, str]

    async def run(self, **kwargs: Any) -> str: ...


def parse_structured(text: str | None, schema: type[T]) -> T:
    """Validate a JSON reply against the schema; raises SchemaValidationError."""
    raw = (text or "").strip()
    # Strip markdown code block if present
    if "```" in raw:
        match = re.search(r"```(?:json)?\s*([\s\S]*?)```", raw)
        if match:
            raw = match.group(1).strip()
    if not raw:
        raise SchemaValidationError(schema.__name__, "empty response")
    try:
        return schema.model_validate_json(raw)
    except ValidationError as e:
        raise SchemaValidationError(schema.__name__, str(e)) from e


def _image_error_message(err: Exception) -> str:
    """Turn API errors into a short user-facing message."""
    s = str(err).strip()
    if "billed users" in s or "only accessible to billed" in s:
        return "Imagen requires a billed Google Cloud / Gemini account."
    if "429" in s or "RESOURCE_EXHAUSTED" in s or "quota" in s.lower():
        return "Image generation quota exceeded. Try again in a few minutes."
    return s[:200] if len(s) > 200 else (s or "Image generation failed.")


class GeminiService:
    """Thin async facade over the google-genai client. The sync SDK calls run in a worker thread."""

    def __init__(self, api_key: str, text_model: str, image_model: str, temperature: float = 0.7):
        self.api_key = api_key
        self.text_model = text_model
        self.image_model = image_model
        self.temperature = temperature
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiService":
        return cls(
            api_key=settings.gemini_api_key,
            text_model=settings.gemini_text_model,
            image_model=settings.gemini_image_model,
            temperature=settings.gemini_temperature,
        )

    def _get_client(self):
        """Return Google GenAI client, created on first use."""
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("Gemini API key not configured")
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    # ----- Research with tools -----
    async def run_with_tools(self, prompt: str, tools: Sequence[Tool]) -> AIMessage:
        """One model turn; function calls requested by the model come back as tool_calls."""
        from google.genai import types

        config_kwargs: dict[str, Any] = {"temperature": self.temperature}
        if tools:
            config_kwargs["tools"] = [
                types.Tool(function_declarations=[_function_declaration(t) for t in tools])
            ]
            config_kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(disable=True)

        response = await asyncio.to_thread(
            self._get_client().models.generate_content,
            model=self.text_model,
            contents=[prompt],
            config=types.GenerateContentConfig(**config_kwargs),
        )
        tool_calls = [
            {
                "name": fc.name,
                "args": dict(fc.args or {}),
                "id": fc.id or f"call_{uuid.uuid4().hex[:12]}",
            }
            for fc in (response.function_calls or [])
        ]
        logger.info("research_turn_done", tool_calls=len(tool_calls))
        return AIMessage(content=_response_text(response), tool_calls=tool_calls)

    # ----- Structured output -----
    async def extract(self, prompt: str, schema: type[T]) -> T:
        """Ask for JSON matching the schema and validate it locally."""
        from google.genai import types

        response = await asyncio.to_thread(
            self._get_client().models.generate_content,
            model=self.text_model,
            contents=[prompt],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        result = parse_structured(_response_text(response), schema)
        logger.debug("structured_output", schema=schema.__name__)
        return result

    # ----- Images -----
    async def generate_image(self, prompt: str) -> bytes:
        """PNG bytes for the prompt. Imagen models use generate_images, Gemini image models generate_content."""
        return await asyncio.to_thread(self._generate_image_sync, prompt)

    def _generate_image_sync(self, prompt: str) -> bytes:
        from google.genai import types

        client = self._get_client()
        last_error: str | None = None
        model_id = (self.image_model or "").strip().lower()

        if model_id.startswith(_IMAGEN_PREFIXES):
            try:
                resp = client.models.generate_images(
                    model=self.image_model,
                    prompt=prompt[:2000],
                    config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio="1:1"),
                )
                for gen in resp.generated_images or []:
                    raw = getattr(getattr(gen, "image", None), "image_bytes", None)
                    if raw:
                        return raw if isinstance(raw, bytes) else base64.b64decode(raw)
            except Exception as e:
                logger.warning("imagen_generate_failed", model=self.image_model, error=str(e))
                last_error = _image_error_message(e)

        for model in (self.image_model, *_FALLBACK_IMAGE_MODELS):
            if not model or model.strip().lower().startswith(_IMAGEN_PREFIXES):
                continue
            try:
                response = client.models.generate_content(
                    model=model,
                    contents=[prompt],
                    config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
                )
                for part in response.parts or []:
                    data = getattr(getattr(part, "inline_data", None), "data", None)
                    if data:
                        return data if isinstance(data, bytes) else base64.b64decode(data)
            except Exception as e:
                logger.warning("gemini_image_try_failed", model=model, error=str(e))
                last_error = _image_error_message(e)

        raise WorkflowError(last_error or "Image generation did not produce an image.")


def _function_declaration(tool: Tool):
    from google.genai import types

    return types.FunctionDeclaration(
        name=tool.name,
        description=tool.description,
        parameters=types.Schema(
            type=types.Type.OBJECT,
            properties={
                name: types.Schema(type=types.Type.STRING, description=description)
                for name, description in tool.parameters.items()
            },
            required=list(tool.parameters),
        ),
    )


def _response_text(response: Any) -> str:
    """Concatenated text parts; function-call-only replies have none."""
    parts = response.parts or []
    return "".join(p.text for p in parts if getattr(p, "text", None))


def image_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
