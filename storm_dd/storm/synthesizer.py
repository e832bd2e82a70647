from __future__ import annotations

import json

from loguru import logger
from openai import AuthenticationError
from pydantic import ValidationError

from storm_dd.errors import LLMConfigurationError, SynthesisError
from storm_dd.llm_client import ChatCompletionsClient, ResponseFormat
from storm_dd.models.report import StructuredReport, report_json_schema
from storm_dd.models.research import DocumentExcerpt
from storm_dd.services.prompt_store import render_prompt
from storm_dd.storm.quality import (
    MIN_DUE_DILIGENCE_QUESTIONS,
    MIN_RISKS,
    report_quality_issues,
)
from storm_dd.tools.json_utils import extract_json_object

SCHEMA_NAME = "investment_memo"


def parse_report(raw_text: str) -> StructuredReport:
    """Parse and validate the model output. Any defect is fatal; there is no partial report."""
    if not raw_text or not raw_text.strip():
        raise SynthesisError("Empty response from language model")
    try:
        payload = extract_json_object(raw_text)
    except json.JSONDecodeError as e:
        raise SynthesisError(f"Synthesis response is not valid JSON: {e}") from e
    try:
        return StructuredReport.model_validate(payload)
    except ValidationError as e:
        raise SynthesisError(
            f"Synthesis response does not match the report schema ({e.error_count()} errors): {e}"
        ) from e


class ReportSynthesizer:
    """Turns the document excerpt plus research context into a validated StructuredReport.

    Two output strategies, depending on the provider:
      - json_object: schema spelled out in the system prompt, fences stripped before parsing
      - json_schema: provider-native schema enforcement
    """

    name = "storm.synthesizer"

    def __init__(
        self,
        client: ChatCompletionsClient,
        *,
        mode: ResponseFormat | str = ResponseFormat.JSON_OBJECT,
        model: str | None = None,
        max_tokens: int | None = None,
    ):
        mode = ResponseFormat(mode)
        if mode == ResponseFormat.TEXT:
            raise ValueError("Synthesis requires a JSON response format")
        self.client = client
        self.mode = mode
        self.model = model
        self.max_tokens = max_tokens

    def build_system_prompt(self) -> str:
        prompt = render_prompt(
            "synthesis.system_prompt",
            min_risks=MIN_RISKS,
            min_questions=MIN_DUE_DILIGENCE_QUESTIONS,
        )
        if self.mode == ResponseFormat.JSON_OBJECT:
            schema_text = json.dumps(report_json_schema(), ensure_ascii=False)
            prompt += "\n" + render_prompt("synthesis.schema_instruction", schema=schema_text)
        return prompt

    def build_messages(self, excerpt: DocumentExcerpt, context: str) -> list[dict[str, str]]:
        research_context = context if context.strip() else render_prompt("synthesis.no_search_context")
        return [
            {"role": "system", "content": self.build_system_prompt()},
            {
                "role": "user",
                "content": render_prompt(
                    "synthesis.user_prompt",
                    excerpt=excerpt.text,
                    research_context=research_context,
                ),
            },
        ]

    async def synthesize(self, excerpt: DocumentExcerpt, context: str) -> StructuredReport:
        try:
            completion = await self.client.complete(
                self.build_messages(excerpt, context),
                response_format=self.mode,
                json_schema=report_json_schema() if self.mode == ResponseFormat.JSON_SCHEMA else None,
                schema_name=SCHEMA_NAME,
                model=self.model,
                max_tokens=self.max_tokens,
                caller=self.name,
            )
        except AuthenticationError as e:
            raise LLMConfigurationError(f"Language model rejected the API key: {e}") from e
        except Exception as e:
            raise SynthesisError(f"Synthesis call failed: {e}") from e

        report = parse_report(completion.text)
        for issue in report_quality_issues(report):
            logger.warning(f"Report quality: {issue}")
        return report
