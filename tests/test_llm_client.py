from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storm_dd.llm_client import ChatCompletionsClient, ResponseFormat, get_client


def _openai_response(content, prompt_tokens=11, completion_tokens=7):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def _client(response=None, side_effect=None):
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return openai_client, ChatCompletionsClient(openai_client, model="deepseek-chat", max_tokens=8000)


class TestResponseFormat:
    def test_json_object(self):
        assert ChatCompletionsClient._response_format(ResponseFormat.JSON_OBJECT, None, "x") == {
            "type": "json_object"
        }

    def test_json_schema_wraps_schema(self):
        schema = {"type": "object", "properties": {}}

        fmt = ChatCompletionsClient._response_format(ResponseFormat.JSON_SCHEMA, schema, "memo")

        assert fmt == {
            "type": "json_schema",
            "json_schema": {"name": "memo", "schema": schema, "strict": False},
        }

    def test_json_schema_without_schema_is_rejected(self):
        with pytest.raises(ValueError):
            ChatCompletionsClient._response_format(ResponseFormat.JSON_SCHEMA, None, "memo")


def test_response_without_choices_is_rejected():
    with pytest.raises(ValueError):
        ChatCompletionsClient._from_openai_response(SimpleNamespace(choices=[]), "m")


def test_missing_content_and_usage_default_to_empty():
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])

    completion = ChatCompletionsClient._from_openai_response(response, "m")

    assert completion.text == ""
    assert completion.usage.input_tokens == 0


@pytest.mark.asyncio
async def test_complete_sends_request_and_logs_usage():
    openai_client, client = _client(_openai_response('{"queries": []}'))
    messages = [{"role": "user", "content": "hi"}]

    with patch("storm_dd.llm_client.log_service.log_llm_call") as log_call:
        completion = await client.complete(messages, model="planner-model", max_tokens=512, caller="storm.planner")

    openai_client.chat.completions.create.assert_awaited_once_with(
        model="planner-model",
        messages=messages,
        temperature=0.2,
        max_tokens=512,
        response_format={"type": "json_object"},
    )
    assert completion.text == '{"queries": []}'
    assert completion.model == "planner-model"
    log_call.assert_called_once()
    assert log_call.call_args.kwargs["caller"] == "storm.planner"
    assert log_call.call_args.kwargs["input_tokens"] == 11
    assert log_call.call_args.kwargs["output_tokens"] == 7


@pytest.mark.asyncio
async def test_complete_logs_and_reraises_failures():
    _, client = _client(side_effect=RuntimeError("timeout"))

    with patch("storm_dd.llm_client.log_service.log_llm_call") as log_call:
        with pytest.raises(RuntimeError, match="timeout"):
            await client.complete([{"role": "user", "content": "hi"}])

    assert log_call.call_args.kwargs["status"] == "error"
    assert log_call.call_args.kwargs["error"] == "timeout"


def test_get_client_points_at_configured_endpoint(pipeline_config):
    config = replace(pipeline_config, llm_base_url="https://llm.example.com/v1", llm_model="m-1")

    with patch("openai.AsyncOpenAI") as async_openai:
        client = get_client(config)

    async_openai.assert_called_once_with(api_key="sk-test-llm", base_url="https://llm.example.com/v1")
    assert client.model == "m-1"
    assert client.max_tokens == config.llm_max_tokens
