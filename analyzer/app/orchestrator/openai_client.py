from __future__ import annotations

import logging
from typing import Any, List, Optional

import openai
from openai import AsyncOpenAI

from analyzer.app.errors import TransportError
from analyzer.app.orchestrator.client import RunSnapshot, ThreadMessage

logger = logging.getLogger(__name__)


def _snapshot(run: Any) -> RunSnapshot:
    required = getattr(run, "required_action", None)
    last_error = getattr(run, "last_error", None)
    return RunSnapshot(
        run_id=run.id,
        status=str(run.status),
        required_action_type=getattr(required, "type", None),
        last_error=getattr(last_error, "message", None),
    )


def _message_text(message: Any) -> str:
    parts = []
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(block.text.value)
    return "\n".join(parts)


class OpenAIAssistantClient:
    """
    ``AssistantClient`` backed by the OpenAI Assistants threads/runs API.

    Every ``openai.APIError`` (connection failures, timeouts, non-2xx
    responses) is re-raised as ``TransportError`` naming the operation.
    """

    def __init__(self, client: AsyncOpenAI) -> None:
        self._client = client

    @property
    def _threads(self):
        return self._client.beta.threads

    async def create_thread(self) -> str:
        try:
            thread = await self._threads.create()
        except openai.APIError as exc:
            raise self._transport_error("create_thread", exc) from exc
        return thread.id

    async def post_message(self, thread_id: str, content: str) -> None:
        try:
            await self._threads.messages.create(
                thread_id,
                role="user",
                content=content,
            )
        except openai.APIError as exc:
            raise self._transport_error("post_message", exc) from exc

    async def start_run(
        self,
        thread_id: str,
        *,
        assistant_id: str,
        instructions: Optional[str] = None,
    ) -> RunSnapshot:
        kwargs = {"assistant_id": assistant_id}
        if instructions:
            kwargs["instructions"] = instructions
        try:
            run = await self._threads.runs.create(thread_id, **kwargs)
        except openai.APIError as exc:
            raise self._transport_error("start_run", exc) from exc
        return _snapshot(run)

    async def get_run_status(self, thread_id: str, run_id: str) -> RunSnapshot:
        try:
            run = await self._threads.runs.retrieve(run_id, thread_id=thread_id)
        except openai.APIError as exc:
            raise self._transport_error("get_run_status", exc) from exc
        return _snapshot(run)

    async def submit_continuation(self, thread_id: str, run_id: str) -> None:
        try:
            await self._threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=[],
            )
        except openai.APIError as exc:
            raise self._transport_error("submit_continuation", exc) from exc

    async def list_messages(
        self,
        thread_id: str,
        *,
        limit: int = 1,
    ) -> List[ThreadMessage]:
        try:
            page = await self._threads.messages.list(
                thread_id,
                order="desc",
                limit=limit,
            )
        except openai.APIError as exc:
            raise self._transport_error("list_messages", exc) from exc

        return [
            ThreadMessage(role=str(m.role), text=_message_text(m))
            for m in page.data
        ]

    @staticmethod
    def _transport_error(operation: str, exc: Exception) -> TransportError:
        logger.warning(
            "openai_request_failed",
            extra={"operation": operation, "error": type(exc).__name__},
        )
        return TransportError(f"{operation} failed: {exc}", operation=operation)
