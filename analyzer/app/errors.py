"""
Typed failure kinds for the analyzer.

Every failure that leaves the core is one of these classes, so callers can
decide between "fix the input", "try again" and "report a bug" without
parsing messages.
"""

from __future__ import annotations

from typing import Optional


class AnalyzerError(Exception):
    """Base class for all analyzer failures."""


class ChunkingError(AnalyzerError, ValueError):
    """Invalid chunking configuration or unusable document text. Never retried."""


class RuleConfigurationError(AnalyzerError, ValueError):
    """A pre-screening rule or checklist pattern failed to compile."""


class TransportError(AnalyzerError):
    """
    A call to the remote generation service failed.

    Retried only inside the poll loop's own backoff; callers do not retry it.
    """

    def __init__(self, message: str, *, operation: str) -> None:
        super().__init__(message)
        self.operation = operation


class JobTerminalError(AnalyzerError):
    """The remote job ended as FAILED, CANCELLED or EXPIRED."""

    def __init__(
        self,
        message: str,
        *,
        state: str,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.state = state
        self.detail = detail


class AnalysisTimeoutError(AnalyzerError, TimeoutError):
    """
    The job did not finish in time.

    ``reason`` is ``"max_retries"`` when the poll budget ran out and
    ``"wall_clock"`` when the overall deadline fired.
    """

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class MalformedResponseError(AnalyzerError):
    """The remote response could not be turned into an AnalysisResult."""

    EXCERPT_CHARS = 500

    def __init__(self, message: str, *, raw: str = "") -> None:
        super().__init__(message)
        self.excerpt = raw[: self.EXCERPT_CHARS]


class RenderError(AnalyzerError):
    """The PDF backend failed to serialize a laid-out report."""


class JobStateError(AnalyzerError, RuntimeError):
    """An AnalysisJob was asked to make an illegal state transition."""
