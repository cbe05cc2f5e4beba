from __future__ import annotations

import asyncio
from typing import AsyncIterator

from analyzer.app.events.models import AnalysisEvent, AnalysisEventType
from analyzer.app.events.emitter import AnalysisEventEmitter


class MemoryQueueEventEmitter(AnalysisEventEmitter):
    """
    In-memory async event emitter suitable for SSE streaming.

    Properties:
    - single-consumer
    - ordered delivery
    - closes itself on ANALYSIS_COMPLETED or ANALYSIS_FAILED
    """

    TERMINAL_EVENTS = frozenset(
        {
            AnalysisEventType.ANALYSIS_COMPLETED,
            AnalysisEventType.ANALYSIS_FAILED,
        }
    )

    def __init__(self) -> None:
        self._queue: asyncio.Queue[AnalysisEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: AnalysisEvent) -> None:
        if self._closed:
            return

        self._queue.put_nowait(event)

        if event.event_type in self.TERMINAL_EVENTS:
            await self.close()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def stream(self) -> AsyncIterator[AnalysisEvent]:
        """Yield emitted events in order until the emitter closes."""
        while True:
            event = await self._queue.get()
            if event is None:
                break
            yield event
