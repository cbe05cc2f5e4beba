from __future__ import annotations

from typing import List, Optional, Protocol

from pydantic import BaseModel, ConfigDict


# ----------------------------------------------------------------------
# Wire snapshots
# ----------------------------------------------------------------------

class RunSnapshot(BaseModel):
    """Point-in-time view of a remote run, as reported by the service."""

    run_id: str
    status: str
    required_action_type: Optional[str] = None
    last_error: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class ThreadMessage(BaseModel):
    role: str
    text: str

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


# ----------------------------------------------------------------------
# Remote Interface
# ----------------------------------------------------------------------

class AssistantClient(Protocol):
    """
    The only surface through which the orchestrator reaches the remote
    generation service.

    Implementations raise ``TransportError`` for any failed call.
    """

    async def create_thread(self) -> str:
        ...

    async def post_message(self, thread_id: str, content: str) -> None:
        ...

    async def start_run(
        self,
        thread_id: str,
        *,
        assistant_id: str,
        instructions: Optional[str] = None,
    ) -> RunSnapshot:
        ...

    async def get_run_status(self, thread_id: str, run_id: str) -> RunSnapshot:
        ...

    async def submit_continuation(self, thread_id: str, run_id: str) -> None:
        ...

    async def list_messages(
        self,
        thread_id: str,
        *,
        limit: int = 1,
    ) -> List[ThreadMessage]:
        """Newest first."""
        ...
