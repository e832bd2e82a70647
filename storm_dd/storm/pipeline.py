from __future__ import annotations

import asyncio
import time
from typing import AsyncGenerator
from uuid import uuid4

from loguru import logger

from storm_dd.config import PipelineConfig
from storm_dd.errors import ExtractionError, LLMConfigurationError
from storm_dd.llm_client import ChatCompletionsClient, get_client
from storm_dd.models.events import SSEEvent
from storm_dd.models.report import StructuredReport
from storm_dd.models.research import AggregatedEvidence, DocumentExcerpt, PerQueryResult, QueryPlan
from storm_dd.services import logger as log_service
from storm_dd.services import streaming
from storm_dd.storm.aggregator import aggregate
from storm_dd.storm.assembler import assemble
from storm_dd.storm.planner import QueryPlanner
from storm_dd.storm.retriever import EvidenceRetriever, SearchFn
from storm_dd.storm.synthesizer import ReportSynthesizer
from storm_dd.tools import pdf_extractor


class DueDiligencePipeline:
    """Runs one STORM analysis of a business plan.

    Flow:
      1. Extract PDF text and cap it to an excerpt
      2. Plan 3-4 research queries (falls back to fixed queries)
      3. Fan out: search all queries concurrently (failures empty their slot)
      4. Aggregate evidence in query order, dedupe sources by url
      5. Synthesize the schema-validated report (fatal on failure)
      6. Attach sources and hand the report back

    `stream_*` methods yield progress events; `analyze_*` just return the report.
    Create one pipeline per invocation.
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        client: ChatCompletionsClient | None = None,
        search_fn: SearchFn | None = None,
        run_id: str | None = None,
    ):
        self.config = config
        self.client = client
        self.search_fn = search_fn
        self.run_id = run_id or uuid4().hex
        self.plan: QueryPlan | None = None
        self.search_results: list[PerQueryResult] = []
        self.evidence: AggregatedEvidence | None = None
        self.report: StructuredReport | None = None

    def _get_client(self) -> ChatCompletionsClient:
        if self.client is None:
            if not self.config.llm_api_key:
                raise LLMConfigurationError("Language model API key is not configured")
            self.client = get_client(self.config)
        return self.client

    def _step(self, step: str, status: str, **data) -> None:
        log_service.log_pipeline_step(self.run_id, step, status, data or None)

    async def stream_text(self, text: str) -> AsyncGenerator[SSEEvent, None]:
        t0 = time.monotonic()
        if not text or not text.strip():
            raise ExtractionError(
                "Document text is empty",
                user_message="未能从文档中提取到文字，可能是扫描件或图片版文档。",
            )
        client = self._get_client()

        excerpt = DocumentExcerpt.from_text(text, max_chars=self.config.excerpt_max_chars)
        yield streaming.extraction_completed(len(text), len(excerpt))

        planner = QueryPlanner(
            client,
            model=self.config.planner_model,
            excerpt_chars=self.config.planner_excerpt_chars,
            max_tokens=self.config.planner_max_tokens,
        )
        self._step("plan", "running")
        self.plan = await planner.plan(excerpt)
        self._step(
            "plan",
            "completed",
            queries=self.plan.queries,
            degraded=self.plan.degraded.value if self.plan.degraded else None,
        )
        yield streaming.plan_created(self.plan)

        retriever = EvidenceRetriever.from_config(self.config, search_fn=self.search_fn)
        yield streaming.search_started(self.plan.queries, enabled=retriever.has_credentials())
        self._step("retrieve", "running", queries=len(self.plan.queries))
        self.search_results = await retriever.retrieve(self.plan.queries)
        for index, result in enumerate(self.search_results):
            yield streaming.search_result(index, result)
        self._step(
            "retrieve",
            "completed",
            succeeded=sum(1 for r in self.search_results if r.ok),
            degraded=sum(1 for r in self.search_results if not r.ok),
        )

        self.evidence = aggregate(self.search_results)
        yield streaming.evidence_aggregated(self.evidence)

        synthesizer = ReportSynthesizer(
            client,
            mode=self.config.structured_output_mode,
            model=self.config.llm_model,
            max_tokens=self.config.llm_max_tokens,
        )
        yield streaming.synthesis_started(len(self.evidence.sources), synthesizer.mode.value)
        self._step("synthesize", "running")
        try:
            report = await synthesizer.synthesize(excerpt, self.evidence.context)
        except Exception as e:
            self._step("synthesize", "failed", error=str(e))
            raise
        self._step("synthesize", "completed")

        self.report = assemble(report, self.evidence.sources)
        runtime_ms = int((time.monotonic() - t0) * 1000)
        logger.info(
            f"Analysis {self.run_id} complete in {runtime_ms}ms with {len(self.evidence.sources)} sources"
        )
        yield streaming.analysis_complete(self.report.to_dict(), runtime_ms=runtime_ms)

    async def stream_document(self, source: pdf_extractor.Source) -> AsyncGenerator[SSEEvent, None]:
        # Fail on configuration before spending time on extraction.
        self._get_client()
        text = await asyncio.to_thread(
            pdf_extractor.extract_text, source, max_pages=self.config.pdf_max_pages
        )
        async for event in self.stream_text(text):
            yield event

    async def analyze_text(self, text: str) -> StructuredReport:
        async for _ in self.stream_text(text):
            pass
        return self.report  # type: ignore[return-value]

    async def analyze_document(self, source: pdf_extractor.Source) -> StructuredReport:
        async for _ in self.stream_document(source):
            pass
        return self.report  # type: ignore[return-value]
