from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tavily import AsyncTavilyClient


@dataclass
class SearchResult:
    title: str
    url: str
    content: str
    score: float


@dataclass
class SearchResponse:
    results: list[SearchResult]
    answer: str | None = None


async def search(
    query: str,
    *,
    api_key: str,
    search_depth: str = "advanced",
    max_results: int = 5,
    include_answer: bool = True,
    topic: str = "general",
) -> SearchResponse:
    """Execute a Tavily web search and return structured results."""
    client = AsyncTavilyClient(api_key=api_key)

    kwargs: dict[str, Any] = {
        "query": query,
        "search_depth": search_depth,
        "max_results": max_results,
        "include_answer": include_answer,
        "topic": topic,
    }
    response = await client.search(**kwargs)
    if not isinstance(response, dict):
        raise ValueError(f"Unexpected Tavily payload type: {type(response).__name__}")

    raw_results = response.get("results") or []
    if not isinstance(raw_results, list):
        raise ValueError("Tavily payload 'results' is not a list")

    answer = response.get("answer")
    return SearchResponse(
        results=[
            SearchResult(
                title=str(r.get("title", "") or ""),
                url=str(r.get("url", "") or ""),
                content=str(r.get("content", "") or ""),
                score=float(r.get("score", 0.0) or 0.0),
            )
            for r in raw_results
            if isinstance(r, dict)
        ],
        answer=answer if isinstance(answer, str) and answer.strip() else None,
    )
