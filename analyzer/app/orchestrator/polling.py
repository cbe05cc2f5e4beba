from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterator, Optional

import anyio
from pydantic import BaseModel, ConfigDict, Field, model_validator
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from analyzer.app.errors import (
    AnalysisTimeoutError,
    JobTerminalError,
    TransportError,
)
from analyzer.app.events import (
    AnalysisEvent,
    AnalysisEventEmitter,
    AnalysisEventType,
    NullEventEmitter,
)
from analyzer.app.orchestrator.client import AssistantClient, RunSnapshot
from analyzer.app.orchestrator.job import AnalysisJob, JobState, state_from_remote

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_CONTINUABLE_ACTIONS = {None, "submit_tool_outputs"}


class RunPending(RuntimeError):
    """
    Internal sentinel for a run that is still in flight.

    Raised by a poll that saw a non-terminal status. Explicitly retryable.
    """


# ----------------------------------------------------------------------
# Backoff policy
# ----------------------------------------------------------------------

class PollingPolicy(BaseModel):
    """
    Poll schedule for a remote run.

    The delay before retry ``r`` (0-based) is ``min(base * growth**r, cap)``.
    """

    base_seconds: float = Field(1.0, gt=0)
    growth: float = Field(1.5, ge=1.0)
    cap_seconds: float = Field(15.0, gt=0)
    transport_error_delay_seconds: float = Field(5.0, ge=0)
    max_retries: int = Field(30, ge=1)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    @model_validator(mode="after")
    def cap_not_below_base(self) -> "PollingPolicy":
        if self.cap_seconds < self.base_seconds:
            raise ValueError("cap_seconds must be >= base_seconds")
        return self

    def delay_for(self, retry: int) -> float:
        return min(self.base_seconds * self.growth ** retry, self.cap_seconds)

    def schedule(self) -> Iterator[float]:
        """Delays between consecutive polls (one fewer than max_retries)."""
        for retry in range(self.max_retries - 1):
            yield self.delay_for(retry)


# ----------------------------------------------------------------------
# Poller
# ----------------------------------------------------------------------

class RunPoller:
    """
    Polls a started run until it reaches a terminal state.

    - COMPLETED returns the final snapshot.
    - FAILED, CANCELLED and EXPIRED raise ``JobTerminalError`` at once.
    - REQUIRES_ACTION submits an empty continuation and keeps polling.
    - Running out of polls raises ``AnalysisTimeoutError`` (or the last
      ``TransportError`` when the final poll failed on transport).
    """

    def __init__(
        self,
        client: AssistantClient,
        policy: PollingPolicy,
        *,
        sleep: Sleep = anyio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep

    async def wait_for_completion(
        self,
        job: AnalysisJob,
        *,
        analysis_id: Optional[str] = None,
        emitter: Optional[AnalysisEventEmitter] = None,
    ) -> RunSnapshot:
        emitter = emitter or NullEventEmitter()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.max_retries),
            wait=self._wait,
            retry=retry_if_exception_type((RunPending, TransportError)),
            before_sleep=self._log_sleep,
            sleep=self._sleep,
            reraise=False,
        )

        try:
            return await retrying(
                self._poll_once,
                job,
                analysis_id=analysis_id,
                emitter=emitter,
            )
        except RetryError as exc:
            last = exc.last_attempt.exception()
            job.transition(JobState.TIMED_OUT)
            logger.warning(
                "run_poll_budget_exhausted",
                extra={
                    "job_id": job.id,
                    "run_id": job.run_id,
                    "polls": self._policy.max_retries,
                },
            )
            if isinstance(last, TransportError):
                raise last
            raise AnalysisTimeoutError(
                f"run {job.run_id} did not finish after "
                f"{self._policy.max_retries} polls",
                reason="max_retries",
            ) from last

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _wait(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is not None and isinstance(outcome.exception(), TransportError):
            return self._policy.transport_error_delay_seconds
        return self._policy.delay_for(retry_state.attempt_number - 1)

    @staticmethod
    def _log_sleep(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.debug(
            "run_poll_backoff attempt=%s delay=%.2fs",
            retry_state.attempt_number,
            delay,
        )

    async def _poll_once(
        self,
        job: AnalysisJob,
        *,
        analysis_id: Optional[str],
        emitter: AnalysisEventEmitter,
    ) -> RunSnapshot:
        try:
            snapshot = await self._client.get_run_status(job.thread_id, job.run_id)
        except TransportError:
            job.retries += 1
            logger.warning(
                "run_status_check_failed",
                extra={"job_id": job.id, "run_id": job.run_id, "retries": job.retries},
            )
            raise

        state = state_from_remote(snapshot.status)

        if analysis_id is not None:
            await emitter.emit(
                AnalysisEvent(
                    analysis_id=analysis_id,
                    event_type=AnalysisEventType.RUN_STATUS_POLLED,
                    details={
                        "run_id": snapshot.run_id,
                        "status": snapshot.status,
                        "poll": job.retries + 1,
                    },
                )
            )

        if state is JobState.COMPLETED:
            job.transition(JobState.COMPLETED)
            return snapshot

        if state in (JobState.FAILED, JobState.CANCELLED, JobState.EXPIRED):
            job.transition(state)
            logger.error(
                "run_terminal_failure",
                extra={
                    "job_id": job.id,
                    "run_id": job.run_id,
                    "status": snapshot.status,
                    "last_error": snapshot.last_error,
                },
            )
            raise JobTerminalError(
                f"run {snapshot.run_id} ended with status {snapshot.status}"
                + (f": {snapshot.last_error}" if snapshot.last_error else ""),
                state=state.value,
                detail=snapshot.last_error,
            )

        if state is JobState.REQUIRES_ACTION:
            job.transition(JobState.REQUIRES_ACTION)
            if snapshot.required_action_type in _CONTINUABLE_ACTIONS:
                await self._client.submit_continuation(job.thread_id, job.run_id)
                if analysis_id is not None:
                    await emitter.emit(
                        AnalysisEvent(
                            analysis_id=analysis_id,
                            event_type=AnalysisEventType.RUN_ACTION_SUBMITTED,
                            details={"run_id": snapshot.run_id},
                        )
                    )
            job.transition(JobState.RUNNING)
        else:
            job.transition(JobState.RUNNING)

        job.retries += 1
        raise RunPending(f"run_pending:{snapshot.status}")
