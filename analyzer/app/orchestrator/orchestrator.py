from __future__ import annotations

import logging
from typing import Optional, Sequence

import anyio
from pydantic import ValidationError

from analyzer.app.chunking.chunker import Chunk
from analyzer.app.errors import AnalysisTimeoutError, MalformedResponseError
from analyzer.app.events import (
    AnalysisEvent,
    AnalysisEventEmitter,
    AnalysisEventType,
    NullEventEmitter,
)
from analyzer.app.orchestrator.client import AssistantClient
from analyzer.app.orchestrator.job import AnalysisJob, JobState, state_from_remote
from analyzer.app.orchestrator.json_extract import extract_json_object
from analyzer.app.orchestrator.messages import build_staged_messages
from analyzer.app.orchestrator.polling import PollingPolicy, RunPoller, Sleep
from analyzer.app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Drives one multi-turn remote analysis job to completion.

    Guarantees:
    - chunk messages are delivered in index order before the run starts
    - the overall deadline cancels any in-flight poll or backoff sleep
    - every failure surfaces as a typed error; no partial result escapes
    """

    def __init__(
        self,
        *,
        client: AssistantClient,
        assistant_id: str,
        policy: PollingPolicy,
        timeout_seconds: float = 15 * 60.0,
        run_instructions: Optional[str] = None,
        sleep: Sleep = anyio.sleep,
    ) -> None:
        self._client = client
        self._assistant_id = assistant_id
        self._timeout_seconds = timeout_seconds
        self._run_instructions = run_instructions
        self._poller = RunPoller(client, policy, sleep=sleep)

    async def analyze(
        self,
        chunks: Sequence[Chunk],
        instructions: str,
        *,
        annotation: Optional[str] = None,
        analysis_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> AnalysisResult:
        emitter = emitter or NullEventEmitter()
        job = AnalysisJob()

        try:
            with anyio.fail_after(self._timeout_seconds):
                return await self._run_job(
                    job,
                    chunks,
                    instructions,
                    annotation=annotation,
                    analysis_id=analysis_id,
                    emitter=emitter,
                )
        except AnalysisTimeoutError:
            raise
        except TimeoutError as exc:
            if not job.state.is_terminal:
                job.transition(JobState.TIMED_OUT)
            logger.warning(
                "analysis_deadline_exceeded",
                extra={
                    "job_id": job.id,
                    "run_id": job.run_id,
                    "timeout_seconds": self._timeout_seconds,
                },
            )
            raise AnalysisTimeoutError(
                f"analysis timed out after {self._timeout_seconds:g} seconds",
                reason="wall_clock",
            ) from exc

    # ------------------------------------------------------------------
    # Job phases
    # ------------------------------------------------------------------

    async def _run_job(
        self,
        job: AnalysisJob,
        chunks: Sequence[Chunk],
        instructions: str,
        *,
        annotation: Optional[str],
        analysis_id: Optional[str],
        emitter: AnalysisEventEmitter,
    ) -> AnalysisResult:
        job.thread_id = await self._client.create_thread()

        for message in build_staged_messages(chunks, instructions, annotation=annotation):
            await self._client.post_message(job.thread_id, message)

        snapshot = await self._client.start_run(
            job.thread_id,
            assistant_id=self._assistant_id,
            instructions=self._run_instructions,
        )
        job.run_id = snapshot.run_id
        job.transition(JobState.RUNNING)

        logger.info(
            "run_started",
            extra={
                "job_id": job.id,
                "thread_id": job.thread_id,
                "run_id": job.run_id,
                "chunk_count": len(chunks),
                "initial_status": state_from_remote(snapshot.status).value,
            },
        )

        if analysis_id is not None:
            await emitter.emit(
                AnalysisEvent(
                    analysis_id=analysis_id,
                    event_type=AnalysisEventType.RUN_STARTED,
                    details={"run_id": job.run_id, "chunk_count": len(chunks)},
                )
            )

        await self._poller.wait_for_completion(
            job,
            analysis_id=analysis_id,
            emitter=emitter,
        )

        if analysis_id is not None:
            await emitter.emit(
                AnalysisEvent(
                    analysis_id=analysis_id,
                    event_type=AnalysisEventType.RUN_COMPLETED,
                    details={"run_id": job.run_id, "polls": job.retries + 1},
                )
            )

        return await self._read_result(job)

    async def _read_result(self, job: AnalysisJob) -> AnalysisResult:
        messages = await self._client.list_messages(job.thread_id, limit=1)
        reply = next((m for m in messages if m.role == "assistant"), None)
        if reply is None:
            raise MalformedResponseError(
                f"run {job.run_id} completed without an assistant message"
            )

        payload = extract_json_object(reply.text)
        try:
            return AnalysisResult.model_validate(payload)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"assistant JSON does not match the analysis shape: "
                f"{exc.error_count()} error(s)",
                raw=reply.text,
            ) from exc
