"""
Recovery of a JSON object from free-form assistant output.

The assistant often wraps its JSON in prose or Markdown fences. The first
balanced ``{...}`` region is located by brace matching that skips braces
inside string literals, then parsed.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from analyzer.app.errors import MalformedResponseError


def find_balanced_object(text: str) -> Optional[Tuple[int, int]]:
    """
    Return ``(start, end)`` of the first balanced top-level object, or
    ``None`` when no opening brace is ever closed.

    Single pass: unclosed braces stay on the stack, and the earliest
    opening brace that is ever closed wins.
    """
    first = text.find("{")
    if first == -1:
        return None

    open_at = []
    best: Optional[Tuple[int, int]] = None
    in_string = False
    escaped = False

    for i in range(first, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            open_at.append(i)
        elif ch == "}" and open_at:
            start = open_at.pop()
            if best is None or start < best[0]:
                best = (start, i + 1)
            if not open_at:
                return best
    return best


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first balanced JSON object in ``text``.

    Raises:
        MalformedResponseError: no object found, or the object is not valid
            JSON. The error carries an excerpt of the raw text.
    """
    span = find_balanced_object(text)
    if span is None:
        raise MalformedResponseError(
            "no JSON object found in assistant response",
            raw=text,
        )

    candidate = text[span[0]:span[1]]
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"assistant response is not valid JSON: {exc.msg}",
            raw=candidate,
        ) from exc

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            "assistant response JSON is not an object",
            raw=candidate,
        )
    return payload
