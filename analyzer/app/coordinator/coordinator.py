"""
Central analysis coordinator.

The coordinator enforces execution order and owns no analysis logic of
its own. Each stage is delegated:

    1. pre-screening (deterministic)
    2. chunking (deterministic)
    3. remote analysis job (probabilistic)
    4. secondary validation (optional, advisory)
    5. reconciliation (deterministic)
"""

from __future__ import annotations

import logging
from typing import Optional

from analyzer.app.cache.store import CacheStore, content_key
from analyzer.app.chunking.chunker import chunk_document
from analyzer.app.config import Settings
from analyzer.app.errors import ChunkingError
from analyzer.app.events import (
    AnalysisEvent,
    AnalysisEventEmitter,
    AnalysisEventType,
    NullEventEmitter,
)
from analyzer.app.orchestrator.client import AssistantClient
from analyzer.app.orchestrator.messages import load_prompt
from analyzer.app.orchestrator.orchestrator import AnalysisOrchestrator
from analyzer.app.orchestrator.validator import SecondaryValidator
from analyzer.app.prescreen.annotation import build_prescreen_annotation
from analyzer.app.prescreen.scanner import RuleEngine
from analyzer.app.reconciliation.reconciler import reconcile
from analyzer.app.reconciliation.severity_rules import SeverityPolicy
from analyzer.app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class _GuardedEmitter(AnalysisEventEmitter):
    """Forwards events and logs, rather than raises, sink failures."""

    def __init__(self, inner: AnalysisEventEmitter) -> None:
        self._inner = inner

    async def emit(self, event: AnalysisEvent) -> None:
        try:
            await self._inner.emit(event)
        except Exception:
            logger.warning(
                "event_emission_failed",
                extra={
                    "analysis_id": event.analysis_id,
                    "event_type": event.event_type.value,
                },
            )


class AnalysisCoordinator:
    """
    Runs one document through the full analysis pipeline.

    The emitter is strictly observational: events never influence
    control flow.
    """

    def __init__(
        self,
        *,
        orchestrator: AnalysisOrchestrator,
        rule_engine: RuleEngine,
        severity_policy: SeverityPolicy,
        max_chunk_chars: int = 12_000,
        max_document_chars: int = 2_000_000,
        validator: Optional[SecondaryValidator] = None,
        cache: Optional[CacheStore] = None,
        instructions: Optional[str] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._rule_engine = rule_engine
        self._severity_policy = severity_policy
        self._max_chunk_chars = max_chunk_chars
        self._max_document_chars = max_document_chars
        self._validator = validator
        self._cache = cache
        self._instructions = instructions

    # ------------------------------------------------------------------
    # Integration constructor (composition root)
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: AssistantClient,
        *,
        validator: Optional[SecondaryValidator] = None,
        cache: Optional[CacheStore] = None,
    ) -> "AnalysisCoordinator":
        """
        Wire a coordinator from runtime settings.

        The secondary validator is not built here because it needs the
        raw OpenAI client; the HTTP layer injects it when enabled.
        """
        orchestrator = AnalysisOrchestrator(
            client=client,
            assistant_id=settings.openai_assistant_id,
            policy=settings.polling_policy(),
            timeout_seconds=settings.analysis_timeout_seconds,
            run_instructions=load_prompt("run_instructions"),
        )
        rule_engine = RuleEngine(
            enable_violation_scan=settings.enable_violation_scan,
            enable_compliance_checklist=settings.enable_compliance_checklist,
        )
        return cls(
            orchestrator=orchestrator,
            rule_engine=rule_engine,
            severity_policy=settings.severity_policy(),
            max_chunk_chars=settings.max_chunk_chars,
            max_document_chars=settings.max_document_chars,
            validator=validator,
            cache=cache,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_analysis(
        self,
        *,
        text: str,
        analysis_id: str,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> AnalysisResult:
        emitter = _GuardedEmitter(emitter or NullEventEmitter())

        await self._emit(
            emitter,
            analysis_id,
            AnalysisEventType.ANALYSIS_STARTED,
            {"characters": len(text or "")},
        )

        try:
            result = await self._run(text=text, analysis_id=analysis_id, emitter=emitter)
        except Exception as exc:
            logger.exception(
                "analysis_failed",
                extra={"analysis_id": analysis_id, "error": type(exc).__name__},
            )
            await self._emit(
                emitter,
                analysis_id,
                AnalysisEventType.ANALYSIS_FAILED,
                {"error": type(exc).__name__, "message": str(exc)},
            )
            raise

        await self._emit(
            emitter,
            analysis_id,
            AnalysisEventType.ANALYSIS_COMPLETED,
            {"result": result.model_dump(mode="json", by_alias=True)},
        )
        return result

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(
        self,
        *,
        text: str,
        analysis_id: str,
        emitter: AnalysisEventEmitter,
    ) -> AnalysisResult:
        if not text or not text.strip():
            raise ChunkingError("document text is empty")
        if len(text) > self._max_document_chars:
            raise ChunkingError(
                f"document has {len(text)} characters; "
                f"the limit is {self._max_document_chars}"
            )

        key = content_key(text)
        if self._cache is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.info("analysis_cache_hit", extra={"analysis_id": analysis_id})
                return cached

        # 1. Pre-screening
        prescreen = self._rule_engine.scan(text)
        await self._emit(
            emitter,
            analysis_id,
            AnalysisEventType.PRESCREEN_COMPLETED,
            {
                "violations": len(prescreen.violations),
                "weighted_score": prescreen.weighted_score,
                "checklist_score": prescreen.checklist_score,
            },
        )
        annotation = build_prescreen_annotation(prescreen)

        # 2. Chunking
        chunks = chunk_document(text, self._max_chunk_chars)
        await self._emit(
            emitter,
            analysis_id,
            AnalysisEventType.CHUNKS_PREPARED,
            {"chunk_count": len(chunks)},
        )

        # 3. Remote analysis
        primary = await self._orchestrator.analyze(
            chunks,
            self._instructions or load_prompt("analysis_request"),
            annotation=annotation,
            analysis_id=analysis_id,
            emitter=emitter,
        )

        # 4. Secondary validation (advisory)
        secondary = None
        if self._validator is not None:
            try:
                secondary = await self._validator.validate(primary, text)
            except Exception as exc:
                # Advisory stage: any failure leaves the primary analysis standing
                logger.warning(
                    "secondary_validation_skipped",
                    extra={"analysis_id": analysis_id, "error": type(exc).__name__},
                )
            await self._emit(
                emitter,
                analysis_id,
                AnalysisEventType.SECONDARY_VALIDATION_COMPLETED,
                {"available": secondary is not None},
            )

        # 5. Reconciliation
        result = reconcile(
            primary,
            secondary,
            prescreen,
            policy=self._severity_policy,
            include_prescreen_insights=self._rule_engine.violation_scan_enabled,
        )
        await self._emit(
            emitter,
            analysis_id,
            AnalysisEventType.RECONCILIATION_COMPLETED,
            {
                "insights": len(result.insights),
                "compliance_score": result.compliance_score,
                "validation_performed": result.validation_performed,
            },
        )

        if self._cache is not None:
            self._cache.set(key, result)
        return result

    @staticmethod
    async def _emit(
        emitter: AnalysisEventEmitter,
        analysis_id: str,
        event_type: AnalysisEventType,
        details: Optional[dict] = None,
    ) -> None:
        await emitter.emit(
            AnalysisEvent(
                analysis_id=analysis_id,
                event_type=event_type,
                details=details,
            )
        )
