from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Protocol

import openai
from openai import AsyncOpenAI

from analyzer.app.errors import MalformedResponseError, TransportError
from analyzer.app.orchestrator.json_extract import extract_json_object
from analyzer.app.orchestrator.messages import load_prompt
from analyzer.app.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class SecondaryValidator(Protocol):
    async def validate(
        self,
        primary: AnalysisResult,
        text: str,
    ) -> Mapping[str, Any]:
        """Return an independent analysis payload (camelCase JSON object)."""
        ...


class OpenAISecondaryValidator:
    """
    Cross-checks a primary analysis with a single chat completion.

    The returned mapping is not validated here; reconciliation validates it
    and degrades to primary-only output if it is unusable.
    """

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str,
        max_document_chars: int = 12_000,
    ) -> None:
        self._client = client
        self._model = model
        self._max_document_chars = max_document_chars

    async def validate(
        self,
        primary: AnalysisResult,
        text: str,
    ) -> Dict[str, Any]:
        primary_json = json.dumps(
            primary.model_dump(mode="json", by_alias=True, exclude_none=True),
            ensure_ascii=False,
        )
        excerpt = text[: self._max_document_chars]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": load_prompt("secondary_validation")},
                    {
                        "role": "user",
                        "content": (
                            "PRIMARY ANALYSIS:\n"
                            f"{primary_json}\n\n"
                            "--- BEGIN AGREEMENT EXCERPT ---\n"
                            f"{excerpt}\n"
                            "--- END AGREEMENT EXCERPT ---"
                        ),
                    },
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except openai.APIError as exc:
            raise TransportError(
                f"secondary validation failed: {exc}",
                operation="secondary_validation",
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedResponseError("secondary validation returned no content")

        payload = extract_json_object(content)
        insights = payload.get("insights")
        logger.info(
            "secondary_validation_completed",
            extra={
                "model": self._model,
                "insight_count": len(insights) if isinstance(insights, list) else None,
            },
        )
        return payload
