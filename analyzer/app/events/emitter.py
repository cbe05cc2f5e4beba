from __future__ import annotations

from typing import Protocol

from analyzer.app.events.models import AnalysisEvent


class AnalysisEventEmitter(Protocol):
    """
    Interface for broadcasting analysis progress.

    Implementations must not block the analysis path for long and must
    never let an emission failure abort an analysis.
    """

    async def emit(self, event: AnalysisEvent) -> None:
        ...


class NullEventEmitter:
    """No-op emitter for synchronous requests and tests that ignore events."""

    async def emit(self, event: AnalysisEvent) -> None:
        return
