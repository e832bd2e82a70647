from __future__ import annotations

import json
from typing import Any

from loguru import logger

from storm_dd.llm_client import ChatCompletionsClient, ResponseFormat
from storm_dd.models.research import DegradedReason, DocumentExcerpt, QueryPlan
from storm_dd.services import logger as log_service
from storm_dd.services.prompt_store import prompt_list, render_prompt
from storm_dd.tools.json_utils import extract_json_object

MIN_QUERIES = 3
MAX_QUERIES = 4


def fallback_queries() -> list[str]:
    return prompt_list("planner.fallback_queries")


def normalize_queries(raw_queries: Any, *, max_items: int = MAX_QUERIES) -> list[str]:
    if not isinstance(raw_queries, list):
        return []
    cleaned: list[str] = []
    seen: set[str] = set()
    for item in raw_queries:
        if not isinstance(item, str):
            continue
        value = " ".join(item.split()).strip()
        key = value.lower()
        if not value or key in seen:
            continue
        seen.add(key)
        cleaned.append(value)
        if len(cleaned) >= max_items:
            break
    return cleaned


def top_up_queries(queries: list[str], *, min_items: int = MIN_QUERIES) -> list[str]:
    """Pad a short plan with fallback queries it does not already contain."""
    padded = list(queries)
    seen = {query.lower() for query in padded}
    for query in fallback_queries():
        if len(padded) >= min_items:
            break
        if query.lower() not in seen:
            seen.add(query.lower())
            padded.append(query)
    logger.info(f"Planner returned {len(queries)} queries, padded to {len(padded)} with fallback queries")
    return padded


class QueryPlanner:
    """Asks the model for 3-4 search-engine queries aimed at the document's weak spots.

    Planning only enriches the analysis, so every failure here degrades to the
    fixed fallback query set instead of raising.
    """

    name = "storm.planner"

    def __init__(
        self,
        client: ChatCompletionsClient,
        *,
        model: str | None = None,
        excerpt_chars: int = 3000,
        max_tokens: int = 1024,
    ):
        self.client = client
        self.model = model
        self.excerpt_chars = excerpt_chars
        self.max_tokens = max_tokens

    def build_messages(self, excerpt: DocumentExcerpt) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": render_prompt("planner.system_prompt")},
            {
                "role": "user",
                "content": render_prompt(
                    "planner.user_prompt",
                    excerpt=excerpt.prefix(self.excerpt_chars),
                ),
            },
        ]

    def _fallback(self, reason: DegradedReason, error: str | None = None) -> QueryPlan:
        queries = fallback_queries()
        logger.warning(f"Query planning degraded ({reason.value}), using fallback queries")
        log_service.log_event(
            event_type="planner_degraded",
            message="Query planning fell back to fixed queries",
            reason=reason.value,
            error=error,
        )
        return QueryPlan(queries=queries, degraded=reason, error=error)

    async def plan(self, excerpt: DocumentExcerpt) -> QueryPlan:
        try:
            completion = await self.client.complete(
                self.build_messages(excerpt),
                response_format=ResponseFormat.JSON_OBJECT,
                model=self.model,
                max_tokens=self.max_tokens,
                caller=self.name,
            )
        except Exception as e:
            return self._fallback(DegradedReason.PLANNER_CALL_FAILED, str(e))

        try:
            payload = extract_json_object(completion.text)
        except json.JSONDecodeError as e:
            return self._fallback(DegradedReason.PLANNER_INVALID_JSON, str(e))

        queries = normalize_queries(payload.get("queries"))
        if not queries:
            return self._fallback(DegradedReason.PLANNER_EMPTY)
        if len(queries) < MIN_QUERIES:
            queries = top_up_queries(queries)

        logger.info(f"Planned {len(queries)} research queries")
        return QueryPlan(queries=queries)
