"""OpenAI-compatible chat-completions client used by the planner and the synthesizer."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storm_dd.config import PipelineConfig
from storm_dd.services import logger as log_service


class ResponseFormat(str, Enum):
    TEXT = "text"
    JSON_OBJECT = "json_object"
    JSON_SCHEMA = "json_schema"


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class Completion:
    text: str
    model: str
    usage: Usage = field(default_factory=Usage)


class ChatCompletionsClient:
    """Thin wrapper that turns a chat-completions call into `complete(messages, format) -> text`."""

    def __init__(
        self,
        openai_client: Any,
        *,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 8000,
    ):
        self._client = openai_client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @staticmethod
    def _response_format(
        response_format: ResponseFormat,
        json_schema: dict[str, Any] | None,
        schema_name: str,
    ) -> dict[str, Any]:
        if response_format == ResponseFormat.JSON_SCHEMA:
            if not json_schema:
                raise ValueError("json_schema response format requires a schema")
            return {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": False},
            }
        return {"type": response_format.value}

    @staticmethod
    def _from_openai_response(response: Any, model: str) -> Completion:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ValueError("Chat completion returned no choices")
        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None) or ""

        usage = getattr(response, "usage", None)
        mapped_usage = Usage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        return Completion(text=text, model=model, usage=mapped_usage)

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        response_format: ResponseFormat = ResponseFormat.JSON_OBJECT,
        json_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        model: str | None = None,
        max_tokens: int | None = None,
        caller: str = "llm",
    ) -> Completion:
        used_model = model or self.model
        kwargs: dict[str, Any] = {
            "model": used_model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": max_tokens or self.max_tokens,
            "response_format": self._response_format(response_format, json_schema, schema_name),
        }

        t0 = time.monotonic()
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            log_service.log_llm_call(
                model=used_model,
                caller=caller,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise

        completion = self._from_openai_response(response, used_model)
        log_service.log_llm_call(
            model=used_model,
            caller=caller,
            input_tokens=completion.usage.input_tokens,
            output_tokens=completion.usage.output_tokens,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        return completion


def get_client(config: PipelineConfig) -> ChatCompletionsClient:
    """Build a client for the configured OpenAI-compatible endpoint."""
    from openai import AsyncOpenAI

    openai_client = AsyncOpenAI(
        api_key=config.llm_api_key,
        base_url=config.llm_base_url,
    )
    return ChatCompletionsClient(
        openai_client,
        model=config.llm_model,
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens,
    )
