from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class AnalysisEventType(str, Enum):
    """Progress events emitted while one document is analysed."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # ------------------------------------------------------------------
    # Deterministic stages
    # ------------------------------------------------------------------
    PRESCREEN_COMPLETED = "prescreen_completed"
    CHUNKS_PREPARED = "chunks_prepared"

    # ------------------------------------------------------------------
    # Remote job
    # ------------------------------------------------------------------
    RUN_STARTED = "run_started"
    RUN_STATUS_POLLED = "run_status_polled"
    RUN_ACTION_SUBMITTED = "run_action_submitted"
    RUN_COMPLETED = "run_completed"

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------
    SECONDARY_VALIDATION_COMPLETED = "secondary_validation_completed"
    RECONCILIATION_COMPLETED = "reconciliation_completed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class AnalysisEvent(BaseModel):
    """
    Immutable observation of a stage transition.

    Events are observational only: nothing in the pipeline reads them back.
    """

    event_id: UUID = Field(default_factory=uuid4)
    analysis_id: str = Field(..., description="Identifier of the analysis request")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: AnalysisEventType

    # Optional contextual metadata (run_id, counts, status, ...)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    def to_sse_payload(self) -> str:
        """Serialize as one Server-Sent Events frame."""
        data = json.dumps(self.model_dump(mode="json"), ensure_ascii=False)
        return f"event: {self.event_type.value}\ndata: {data}\n\n"
