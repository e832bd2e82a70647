from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from storm_dd.config import PipelineConfig
from storm_dd.models.research import DegradedReason, EvidenceSnippet, PerQueryResult
from storm_dd.services import logger as log_service
from storm_dd.tools import tavily_search
from storm_dd.tools.tavily_search import SearchResponse

SearchFn = Callable[..., Awaitable[SearchResponse]]

SNIPPET_SEPARATOR = "\n---\n"


def format_context(snippets: list[EvidenceSnippet]) -> str:
    return SNIPPET_SEPARATOR.join(snippet.format() for snippet in snippets)


class EvidenceRetriever:
    """Runs every planned query against the search provider at the same time.

    Results come back in query order whatever order the requests finish in. A
    failing query only empties its own slot; missing credentials empty all of
    them. Neither case raises.
    """

    def __init__(
        self,
        *,
        api_key: str,
        search_depth: str = "advanced",
        max_results: int = 5,
        include_answer: bool = True,
        max_parallel: int = 4,
        min_key_length: int = 5,
        search_fn: SearchFn | None = None,
    ):
        self.api_key = api_key
        self.search_depth = search_depth
        self.max_results = max_results
        self.include_answer = include_answer
        self.max_parallel = max(max_parallel, 1)
        self.min_key_length = min_key_length
        self._search_fn = search_fn

    @classmethod
    def from_config(cls, config: PipelineConfig, search_fn: SearchFn | None = None) -> "EvidenceRetriever":
        return cls(
            api_key=config.tavily_api_key,
            search_depth=config.search_depth,
            max_results=config.search_max_results,
            include_answer=config.search_include_answer,
            max_parallel=config.search_max_parallel_requests,
            min_key_length=config.search_min_key_length,
            search_fn=search_fn,
        )

    def has_credentials(self, api_key: str | None = None) -> bool:
        key = (api_key if api_key is not None else self.api_key or "").strip()
        return bool(key) and len(key) >= self.min_key_length

    def _to_result(self, query: str, response: SearchResponse) -> PerQueryResult:
        snippets = [
            EvidenceSnippet(query=query, title=item.title, url=item.url, content=item.content)
            for item in response.results
            if item.url.strip()
        ]
        return PerQueryResult(
            query=query,
            context=format_context(snippets),
            sources=[snippet.citation() for snippet in snippets],
            snippets=snippets,
            answer=response.answer,
        )

    async def retrieve(self, queries: list[str], api_key: str | None = None) -> list[PerQueryResult]:
        key = (api_key if api_key is not None else self.api_key or "").strip()
        if not self.has_credentials(key):
            logger.info("Search credentials missing, skipping external research")
            log_service.log_event(
                event_type="search_degraded",
                message="Search skipped: credentials missing",
                reason=DegradedReason.SEARCH_CREDENTIALS_MISSING.value,
                queries=len(queries),
            )
            return [
                PerQueryResult.empty(query, DegradedReason.SEARCH_CREDENTIALS_MISSING)
                for query in queries
            ]

        search_fn = self._search_fn or tavily_search.search
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def run_one(query: str) -> PerQueryResult:
            async with semaphore:
                response = await search_fn(
                    query,
                    api_key=key,
                    search_depth=self.search_depth,
                    max_results=self.max_results,
                    include_answer=self.include_answer,
                )
            return self._to_result(query, response)

        raw_results = await asyncio.gather(
            *(run_one(query) for query in queries),
            return_exceptions=True,
        )

        results: list[PerQueryResult] = []
        for index, (query, item) in enumerate(zip(queries, raw_results)):
            if isinstance(item, BaseException):
                if not isinstance(item, Exception):
                    raise item
                logger.warning(f"Search failed for query {index} '{query}': {item}")
                log_service.log_event(
                    event_type="search_degraded",
                    message="Search failed for query",
                    reason=DegradedReason.SEARCH_FAILED.value,
                    query=query,
                    index=index,
                    error=str(item),
                )
                results.append(PerQueryResult.empty(query, DegradedReason.SEARCH_FAILED, str(item)))
                continue
            results.append(item)
        return results
