"""
Staged conversation protocol for multi-part documents.

A single chunk is sent as one message carrying instructions, any
pre-screen annotation and the document. Several chunks are sent as:

- PART 1 OF N: read, acknowledge, and wait;
- PART i OF N: keep reading and wait;
- FINAL PART N OF N: the last part followed by annotation and instructions.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence

from analyzer.app.chunking.chunker import Chunk

PROMPTS_DIR = Path(__file__).parent / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    path = PROMPTS_DIR / f"{name}.txt"
    if not path.exists():
        raise RuntimeError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8").strip()


def _with_annotation(instructions: str, annotation: Optional[str]) -> str:
    if not annotation:
        return instructions
    return f"{instructions}\n\n{annotation}"


def build_staged_messages(
    chunks: Sequence[Chunk],
    instructions: str,
    *,
    annotation: Optional[str] = None,
) -> List[str]:
    """Return the user messages to post, in delivery order."""
    if not chunks:
        raise ValueError("at least one chunk is required")

    tail = _with_annotation(instructions, annotation)

    if len(chunks) == 1:
        return [f"{tail}\n\n{chunks[0].labelled_text}"]

    total = len(chunks)
    messages = [
        (
            "I am sending a UK residential tenancy agreement in several parts "
            f"because of its length. This is PART 1 OF {total}. Read every "
            "part before giving your analysis.\n\n"
            f"{chunks[0].labelled_text}\n\n"
            f"Wait for all {total} parts before analysing. "
            "Just acknowledge receipt of this part."
        )
    ]

    for chunk in chunks[1:-1]:
        messages.append(
            f"This is {chunk.label} of the tenancy agreement:\n\n"
            f"{chunk.labelled_text}\n\n"
            "Keep reading. Wait for all parts before analysing."
        )

    last = chunks[-1]
    messages.append(
        f"This is the FINAL PART {total} OF {total} of the tenancy agreement:\n\n"
        f"{last.labelled_text}\n\n"
        "You now have the complete document.\n\n"
        f"{tail}"
    )
    return messages
