"""
Lifecycle of one remote analysis job.

    CREATED -> RUNNING -> {REQUIRES_ACTION -> RUNNING}*
            -> {COMPLETED | FAILED | CANCELLED | EXPIRED | TIMED_OUT}

Terminal states are final. The job is owned by a single orchestrator call
and never shared.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import uuid4

from analyzer.app.errors import JobStateError


class JobState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[JobState] = frozenset(
    {
        JobState.COMPLETED,
        JobState.FAILED,
        JobState.CANCELLED,
        JobState.EXPIRED,
        JobState.TIMED_OUT,
    }
)

# A run that failed to receive its continuation may report
# requires_action (or finish) again on the next poll.
_ACTIVE_TARGETS: FrozenSet[JobState] = frozenset(
    {
        JobState.RUNNING,
        JobState.REQUIRES_ACTION,
        JobState.COMPLETED,
        JobState.FAILED,
        JobState.CANCELLED,
        JobState.EXPIRED,
        JobState.TIMED_OUT,
    }
)

_TRANSITIONS: Dict[JobState, FrozenSet[JobState]] = {
    JobState.CREATED: frozenset({JobState.RUNNING, JobState.FAILED, JobState.TIMED_OUT}),
    JobState.RUNNING: _ACTIVE_TARGETS,
    JobState.REQUIRES_ACTION: _ACTIVE_TARGETS,
}

# Remote run statuses (OpenAI Assistants vocabulary)
_REMOTE_STATUS: Dict[str, JobState] = {
    "queued": JobState.RUNNING,
    "in_progress": JobState.RUNNING,
    "cancelling": JobState.RUNNING,
    "requires_action": JobState.REQUIRES_ACTION,
    "completed": JobState.COMPLETED,
    "failed": JobState.FAILED,
    "incomplete": JobState.FAILED,
    "cancelled": JobState.CANCELLED,
    "expired": JobState.EXPIRED,
}


def state_from_remote(status: str) -> JobState:
    """Map a remote run status; unknown statuses count as still running."""
    return _REMOTE_STATUS.get(status.strip().lower(), JobState.RUNNING)


@dataclass
class AnalysisJob:
    id: str = field(default_factory=lambda: str(uuid4()))
    state: JobState = JobState.CREATED
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    retries: int = 0
    thread_id: Optional[str] = None
    run_id: Optional[str] = None

    def transition(self, new_state: JobState) -> None:
        if self.state.is_terminal:
            raise JobStateError(
                f"job {self.id} is {self.state.value}; cannot move to {new_state.value}"
            )
        if new_state not in _TRANSITIONS[self.state]:
            raise JobStateError(
                f"illegal transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state
