"""
FastAPI entrypoint for the tenancy agreement analyzer.

Exposes document analysis (synchronous JSON or SSE progress stream) and
PDF report rendering. All collaborators are wired once in the lifespan
hook and shared through ``app.state``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field
from starlette.responses import Response

from analyzer.app.cache.store import CacheSweeper, InMemoryTTLStore, content_key
from analyzer.app.config import Settings, get_settings
from analyzer.app.coordinator.coordinator import AnalysisCoordinator
from analyzer.app.errors import (
    AnalysisTimeoutError,
    AnalyzerError,
    ChunkingError,
    JobTerminalError,
    MalformedResponseError,
    RenderError,
    TransportError,
)
from analyzer.app.events import MemoryQueueEventEmitter
from analyzer.app.orchestrator.openai_client import OpenAIAssistantClient
from analyzer.app.orchestrator.validator import OpenAISecondaryValidator
from analyzer.app.report.renderer import ReportMetadata, ReportRenderer
from analyzer.app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Presentation helpers
# ---------------------------------------------------------------------------

def pretty_json(data: Any) -> str:
    return json.dumps(
        data,
        ensure_ascii=False,
        allow_nan=False,
        indent=2,
        separators=(", ", ": "),
    )


class PrettyJSONResponse(Response):
    """Pretty-printed JSON response for human-readable output."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return pretty_json(content).encode("utf-8")


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    text: str

    model_config = ConfigDict(extra="forbid")


class ReportRequest(BaseModel):
    result: AnalysisResult
    document_name: str = Field(..., alias="documentName")
    analysis_date: Optional[date] = Field(None, alias="analysisDate")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ---------------------------------------------------------------------------
# Lifespan (composition root)
# ---------------------------------------------------------------------------

def build_state(app: FastAPI, settings: Settings, openai_client: Any) -> None:
    """Wire every collaborator onto ``app.state``."""
    analysis_cache = InMemoryTTLStore(
        max_entries=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
    )
    report_cache = InMemoryTTLStore(
        max_entries=settings.cache_max_entries,
        ttl_seconds=settings.cache_ttl_seconds,
    )

    validator = None
    if settings.enable_secondary_validation:
        validator = OpenAISecondaryValidator(
            client=openai_client,
            model=settings.secondary_model,
            max_document_chars=settings.max_chunk_chars,
        )

    app.state.settings = settings
    app.state.coordinator = AnalysisCoordinator.from_settings(
        settings,
        OpenAIAssistantClient(openai_client),
        validator=validator,
        cache=analysis_cache,
    )
    app.state.renderer = ReportRenderer(
        settings.page_geometry(),
        generator_label=settings.report_generator_label,
    )
    app.state.analysis_cache = analysis_cache
    app.state.report_cache = report_cache


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    openai_client = AsyncOpenAI(
        api_key=settings.openai_api_key.get_secret_value() or None,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout_seconds,
    )
    build_state(app, settings, openai_client)

    sweepers = [
        asyncio.create_task(
            CacheSweeper(cache, settings.cache_sweep_interval_seconds).run()
        )
        for cache in (app.state.analysis_cache, app.state.report_cache)
    ]
    logger.info("analyzer_started")
    try:
        yield
    finally:
        for task in sweepers:
            task.cancel()
        for task in sweepers:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await openai_client.close()
        logger.info("analyzer_stopped")


app = FastAPI(
    title="Tenancy Agreement Analyzer",
    description="Compliance analysis and reporting for UK residential tenancy agreements",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR = (
    (ChunkingError, 400),
    (AnalysisTimeoutError, 504),
    (TransportError, 502),
    (JobTerminalError, 502),
    (MalformedResponseError, 502),
    (RenderError, 500),
)


@app.exception_handler(AnalyzerError)
async def analyzer_error_handler(request: Request, exc: AnalyzerError) -> JSONResponse:
    status = 500
    for kind, code in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            status = code
            break
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@app.post(
    "/analyze",
    response_class=PrettyJSONResponse,
    summary="Analyze a tenancy agreement",
)
async def analyze(request: Request, body: AnalyzeRequest) -> PrettyJSONResponse:
    coordinator: AnalysisCoordinator = request.app.state.coordinator
    result = await coordinator.run_analysis(
        text=body.text,
        analysis_id=str(uuid4()),
    )
    return PrettyJSONResponse(
        content=result.model_dump(mode="json", by_alias=True),
    )


@app.post(
    "/analyze/stream",
    summary="Analyze a tenancy agreement with streamed progress events",
)
async def analyze_stream(request: Request, body: AnalyzeRequest) -> StreamingResponse:
    coordinator: AnalysisCoordinator = request.app.state.coordinator
    analysis_id = str(uuid4())
    emitter = MemoryQueueEventEmitter()

    async def run_analysis_task() -> None:
        try:
            await coordinator.run_analysis(
                text=body.text,
                analysis_id=analysis_id,
                emitter=emitter,
            )
        except AnalyzerError:
            # ANALYSIS_FAILED already emitted by the coordinator
            pass

    task = asyncio.create_task(run_analysis_task())

    async def event_stream():
        try:
            async for event in emitter.stream():
                yield event.to_sse_payload()
        except asyncio.CancelledError:
            task.cancel()
            raise

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            "X-Analysis-Id": analysis_id,
        },
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@app.post(
    "/report",
    summary="Render an analysis result as a PDF report",
)
async def report(request: Request, body: ReportRequest) -> Response:
    renderer: ReportRenderer = request.app.state.renderer
    cache = request.app.state.report_cache

    metadata = ReportMetadata(
        document_name=body.document_name,
        analysis_date=body.analysis_date or date.today(),
    )
    key = content_key(
        body.model_copy(update={"analysis_date": metadata.analysis_date}).model_dump_json()
    )
    pdf = cache.get(key)
    if pdf is None:
        pdf = renderer.render(body.result, metadata)
        cache.set(key, pdf)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'attachment; filename="tenancy-analysis-report.pdf"',
        },
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "analyzer",
        }
    )
