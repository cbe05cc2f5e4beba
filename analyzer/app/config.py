"""
Centralized configuration for the Analyzer service.

Pydantic v2 settings management: values are read once from the environment
(prefix ``ANALYZER_``), validated at startup, and frozen for the lifetime of
the process. List-valued settings accept JSON arrays.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from analyzer.app.orchestrator.polling import PollingPolicy
from analyzer.app.reconciliation.severity_rules import SeverityPolicy
from analyzer.app.report.document import PageGeometry


# -------------------------------------------------------------------------
# Default severity vocabularies
# -------------------------------------------------------------------------

DEFAULT_CRITICAL_ISSUE_TITLES = [
    "Deposit Protection Non-compliance",
    "Excessive Termination Rights for Landlord",
    "Unfair Tenant Liability Clause",
    "Rent Withholding Restriction",
    "Illegal Fee",
    "Security Deposit Violation",
    "Unfair Eviction Clause",
    "Repair Responsibility Transfer",
]

DEFAULT_NON_WARNING_TITLES = [
    "Overall Compliance",
    "Fair Dealing",
    "Compliance Summary",
    "Lease Overview",
    "Agreement Summary",
]

DEFAULT_INFORMATIONAL_KEYWORDS = [
    "overall compliance",
    "general review",
    "summary",
    "overview",
    "fair dealing",
    "meets requirements",
    "largely compliant",
    "standard terms",
]

DEFAULT_SERIOUS_ISSUE_KEYWORDS = [
    "unilateral changes without consent",
    "immediate amendment without notice",
    "illegal clause",
    "unfair term that cannot be enforced",
    "clearly non-compliant",
    "direct breach of law",
    "explicitly violates",
    "prohibited fee under tenant fees act",
    "deposit not protected as required",
    "unconscionable clause",
    "unenforceable",
    "void",
    "excessive financial burden",
    "direct contradiction of statutory rights",
    "transfer landlord repair obligations",
    "shifts statutory obligations",
    "violates section 11",
    "tenant responsible for structural repairs",
]


PositiveSeconds = Annotated[float, Field(gt=0)]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup on malformed values or inconsistent polling bounds.
    """

    # ---------------------------------------------------------------------
    # Remote generation service (OpenAI Assistants)
    # ---------------------------------------------------------------------

    openai_api_key: Annotated[
        SecretStr,
        Field(
            default=SecretStr(""),
            description="OpenAI API key, redacted from logs",
        ),
    ]

    openai_assistant_id: Annotated[
        str,
        Field(default="", description="Assistant that runs the analysis"),
    ]

    openai_base_url: Annotated[
        Optional[str],
        Field(default=None, description="Optional API base URL override"),
    ]

    openai_timeout_seconds: Annotated[
        float,
        Field(default=60.0, gt=0, description="Per-request HTTP timeout"),
    ]

    enable_secondary_validation: Annotated[
        bool,
        Field(
            default=False,
            description="Cross-check the primary analysis with a second model",
        ),
    ]

    secondary_model: Annotated[
        str,
        Field(default="gpt-4o", description="Chat model used for validation"),
    ]

    # ---------------------------------------------------------------------
    # Chunking and limits
    # ---------------------------------------------------------------------

    max_chunk_chars: Annotated[
        int,
        Field(default=12_000, gt=0, description="Maximum characters per chunk"),
    ]

    max_document_chars: Annotated[
        int,
        Field(
            default=2_000_000,
            gt=0,
            description="Upper bound on accepted document text",
        ),
    ]

    # ---------------------------------------------------------------------
    # Job polling
    # ---------------------------------------------------------------------

    poll_backoff_base_seconds: PositiveSeconds = 1.0
    poll_backoff_growth: Annotated[float, Field(default=1.5, ge=1.0)]
    poll_backoff_cap_seconds: PositiveSeconds = 15.0
    transport_error_delay_seconds: PositiveSeconds = 5.0
    max_poll_retries: Annotated[int, Field(default=30, ge=1)]
    analysis_timeout_seconds: PositiveSeconds = 15 * 60.0

    # ---------------------------------------------------------------------
    # Pre-screening
    # ---------------------------------------------------------------------

    enable_violation_scan: Annotated[
        bool,
        Field(
            default=False,
            description="Run the weighted violation pattern scan",
        ),
    ]

    enable_compliance_checklist: Annotated[
        bool,
        Field(
            default=True,
            description="Evaluate the statutory compliance checklist",
        ),
    ]

    # ---------------------------------------------------------------------
    # Severity normalization vocabularies
    # ---------------------------------------------------------------------

    critical_issue_titles: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CRITICAL_ISSUE_TITLES)
    )
    non_warning_titles: List[str] = Field(
        default_factory=lambda: list(DEFAULT_NON_WARNING_TITLES)
    )
    informational_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_INFORMATIONAL_KEYWORDS)
    )
    serious_issue_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SERIOUS_ISSUE_KEYWORDS)
    )
    high_rating_threshold: Annotated[int, Field(default=85, ge=0, le=100)]

    # ---------------------------------------------------------------------
    # Report layout
    # ---------------------------------------------------------------------

    page_width: Annotated[float, Field(default=595.0, gt=0)]
    page_height: Annotated[float, Field(default=842.0, gt=0)]
    page_margin: Annotated[float, Field(default=50.0, ge=0)]
    safe_bottom_margin: Annotated[float, Field(default=80.0, ge=0)]
    report_generator_label: str = "Generated by UK Tenancy Agreement Analyzer"

    # ---------------------------------------------------------------------
    # Cache
    # ---------------------------------------------------------------------

    cache_max_entries: Annotated[int, Field(default=1000, ge=1)]
    cache_ttl_seconds: PositiveSeconds = 24 * 60 * 60.0
    cache_sweep_interval_seconds: PositiveSeconds = 60 * 60.0

    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    # ---------------------------------------------------------------------
    # Cross-field validation
    # ---------------------------------------------------------------------

    @model_validator(mode="after")
    def check_bounds(self) -> "Settings":
        if self.poll_backoff_cap_seconds < self.poll_backoff_base_seconds:
            raise ValueError(
                "poll_backoff_cap_seconds must be >= poll_backoff_base_seconds"
            )
        if self.safe_bottom_margin >= self.page_height - self.page_margin:
            raise ValueError(
                "safe_bottom_margin leaves no room for content on the page"
            )
        return self

    # ---------------------------------------------------------------------
    # Derived policies
    # ---------------------------------------------------------------------

    def polling_policy(self) -> PollingPolicy:
        return PollingPolicy(
            base_seconds=self.poll_backoff_base_seconds,
            growth=self.poll_backoff_growth,
            cap_seconds=self.poll_backoff_cap_seconds,
            transport_error_delay_seconds=self.transport_error_delay_seconds,
            max_retries=self.max_poll_retries,
        )

    def severity_policy(self) -> SeverityPolicy:
        return SeverityPolicy(
            critical_issue_titles=tuple(self.critical_issue_titles),
            non_warning_titles=tuple(self.non_warning_titles),
            informational_keywords=tuple(self.informational_keywords),
            serious_issue_keywords=tuple(self.serious_issue_keywords),
            high_rating_threshold=self.high_rating_threshold,
        )

    def page_geometry(self) -> PageGeometry:
        return PageGeometry(
            width=self.page_width,
            height=self.page_height,
            margin=self.page_margin,
            safe_bottom_margin=self.safe_bottom_margin,
        )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings()
