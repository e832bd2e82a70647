from __future__ import annotations

import json as _json

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from sse_starlette.sse import EventSourceResponse

from storm_dd.config import PipelineConfig, settings
from storm_dd.errors import ExtractionError, LLMConfigurationError, PipelineError
from storm_dd.services import logger as log_service
from storm_dd.services import streaming
from storm_dd.storm.pipeline import DueDiligencePipeline

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _status_for(error: PipelineError) -> int:
    if isinstance(error, ExtractionError):
        return 422
    if isinstance(error, LLMConfigurationError):
        return 401
    return 502


def _build_pipeline(llm_api_key: str | None, tavily_api_key: str | None) -> DueDiligencePipeline:
    config = PipelineConfig.from_settings(
        settings,
        llm_api_key=(llm_api_key or "").strip(),
        tavily_api_key=(tavily_api_key or "").strip(),
    )
    return DueDiligencePipeline(config)


@router.post("")
async def analyze(
    file: UploadFile = File(...),
    llm_api_key: str | None = Form(None),
    tavily_api_key: str | None = Form(None),
):
    """Analyze an uploaded business plan PDF and return the report."""
    data = await file.read()
    pipeline = _build_pipeline(llm_api_key, tavily_api_key)
    log_service.log_event(
        event_type="analysis_started",
        message="Analysis started",
        run_id=pipeline.run_id,
        filename=file.filename,
        size=len(data),
    )
    try:
        report = await pipeline.analyze_document(data)
    except PipelineError as e:
        log_service.log_event(
            event_type="analysis_failed",
            message=str(e),
            run_id=pipeline.run_id,
            error_type=type(e).__name__,
        )
        raise HTTPException(
            status_code=_status_for(e),
            detail={"message": e.user_message, "retryable": e.retryable},
        ) from e
    return report.to_dict()


@router.post("/stream")
async def analyze_stream(
    file: UploadFile = File(...),
    llm_api_key: str | None = Form(None),
    tavily_api_key: str | None = Form(None),
):
    """SSE endpoint that streams analysis progress, ending with the report or an error."""
    data = await file.read()
    pipeline = _build_pipeline(llm_api_key, tavily_api_key)

    async def event_generator():
        try:
            async for event in pipeline.stream_document(data):
                yield {
                    "event": event.event.value,
                    "data": _json.dumps(event.data, ensure_ascii=False),
                }
        except PipelineError as e:
            log_service.log_event(
                event_type="analysis_failed",
                message=str(e),
                run_id=pipeline.run_id,
                error_type=type(e).__name__,
            )
            error_event = streaming.error(e.user_message, stage=type(e).__name__, retryable=e.retryable)
            yield {
                "event": error_event.event.value,
                "data": _json.dumps(error_event.data, ensure_ascii=False),
            }
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in analysis stream",
                error=str(e),
                run_id=pipeline.run_id,
            )
            error_event = streaming.error("Analysis stream failed unexpectedly.")
            yield {
                "event": error_event.event.value,
                "data": _json.dumps(error_event.data, ensure_ascii=False),
            }

    return EventSourceResponse(event_generator())
