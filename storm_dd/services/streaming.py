from __future__ import annotations

from typing import Any

from storm_dd.models.events import EventType, SSEEvent
from storm_dd.models.research import AggregatedEvidence, PerQueryResult, QueryPlan


def extraction_completed(chars: int, truncated_chars: int) -> SSEEvent:
    return SSEEvent(
        event=EventType.EXTRACTION_COMPLETED,
        data={"chars": chars, "excerpt_chars": truncated_chars},
    )


def plan_created(plan: QueryPlan) -> SSEEvent:
    data: dict[str, Any] = {"queries": list(plan.queries), "fallback": plan.fell_back}
    if plan.degraded:
        data["degraded"] = plan.degraded.value
    return SSEEvent(event=EventType.PLAN_CREATED, data=data)


def search_started(queries: list[str], *, enabled: bool) -> SSEEvent:
    return SSEEvent(
        event=EventType.SEARCH_STARTED,
        data={"queries": list(queries), "enabled": enabled},
    )


def search_result(index: int, result: PerQueryResult) -> SSEEvent:
    if not result.ok:
        data: dict[str, Any] = {
            "index": index,
            "query": result.query,
            "reason": result.degraded.value if result.degraded else None,
        }
        if result.error:
            data["error"] = result.error
        return SSEEvent(event=EventType.SEARCH_DEGRADED, data=data)
    return SSEEvent(
        event=EventType.SEARCH_RESULT,
        data={
            "index": index,
            "query": result.query,
            "sources": [source.model_dump() for source in result.sources],
        },
    )


def evidence_aggregated(evidence: AggregatedEvidence) -> SSEEvent:
    return SSEEvent(
        event=EventType.EVIDENCE_AGGREGATED,
        data={"sources_count": len(evidence.sources), "context_chars": len(evidence.context)},
    )


def synthesis_started(sources_count: int, mode: str) -> SSEEvent:
    return SSEEvent(
        event=EventType.SYNTHESIS_STARTED,
        data={"sources_count": sources_count, "mode": mode},
    )


def analysis_complete(report: dict[str, Any], runtime_ms: int | None = None) -> SSEEvent:
    data: dict[str, Any] = {"report": report}
    if runtime_ms is not None:
        data["runtime_ms"] = runtime_ms
    return SSEEvent(event=EventType.ANALYSIS_COMPLETE, data=data)


def error(message: str, *, stage: str | None = None, retryable: bool = True) -> SSEEvent:
    data: dict[str, Any] = {"message": message, "retryable": retryable}
    if stage:
        data["stage"] = stage
    return SSEEvent(event=EventType.ERROR, data=data)
