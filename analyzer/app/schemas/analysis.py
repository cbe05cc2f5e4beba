from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ----------------------------------------------------------------------
# Shared model configuration
# ----------------------------------------------------------------------

_WIRE_CONFIG = ConfigDict(
    frozen=True,
    populate_by_name=True,
    alias_generator=to_camel,
    extra="ignore",
)


# ----------------------------------------------------------------------
# Enumerations
# ----------------------------------------------------------------------

class SeverityTier(str, Enum):
    """
    Classification of an insight.

    Tiers are ordered: informational < moderate < warning.
    """

    INFORMATIONAL = "informational"
    MODERATE = "moderate"
    WARNING = "warning"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    SeverityTier.INFORMATIONAL: 0,
    SeverityTier.MODERATE: 1,
    SeverityTier.WARNING: 2,
}

# Vocabulary used by the remote assistant
_WIRE_SEVERITY = {
    "primary": SeverityTier.INFORMATIONAL,
    "accent": SeverityTier.MODERATE,
    "warning": SeverityTier.WARNING,
    "informational": SeverityTier.INFORMATIONAL,
    "moderate": SeverityTier.MODERATE,
}


class ComplianceLevel(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


def _round_score(v: Any) -> Any:
    if isinstance(v, float):
        return round(v)
    return v


# ----------------------------------------------------------------------
# Structured document sections
# ----------------------------------------------------------------------

class StructuredSection(BaseModel):
    confidence: Optional[str] = Field(
        None,
        description="Free-text confidence label, e.g. 'High Confidence'",
    )

    model_config = _WIRE_CONFIG

    @property
    def is_low_confidence(self) -> bool:
        return "low" in (self.confidence or "").lower()


class PropertyDetails(StructuredSection):
    address: Optional[str] = None
    property_type: Optional[str] = None
    size: Optional[str] = None


class FinancialTerms(StructuredSection):
    monthly_rent: Optional[str] = None
    total_deposit: Optional[str] = None
    deposit_protection: Optional[str] = None
    permitted_fees: List[str] = Field(default_factory=list)
    prohibited_fees: Optional[List[str]] = None

    @field_validator("permitted_fees", "prohibited_fees", mode="before")
    @classmethod
    def coerce_fee_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v

    @field_validator("monthly_rent", "total_deposit", "deposit_protection", mode="before")
    @classmethod
    def coerce_amount_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class LeasePeriod(StructuredSection):
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    tenancy_type: Optional[str] = None
    notice_period: Optional[str] = None


class Parties(StructuredSection):
    landlord: Optional[str] = None
    tenant: Optional[str] = None
    guarantor: Optional[str] = None
    agent: Optional[str] = None


# ----------------------------------------------------------------------
# Findings
# ----------------------------------------------------------------------

class Rating(BaseModel):
    value: int = Field(..., ge=0, le=100)
    label: str = ""

    model_config = _WIRE_CONFIG

    @field_validator("value", mode="before")
    @classmethod
    def clamp_value(cls, v: Any) -> Any:
        if isinstance(v, (int, float, str)) and not isinstance(v, bool):
            try:
                return max(0, min(100, round(float(v))))
            except ValueError:
                return v
        return v


class Insight(BaseModel):
    """
    A single observation about the agreement.

    Produced by the remote assistant or by the pre-screening rule engine.
    Severity changes only through reconciliation.
    """

    title: str
    content: str = ""
    severity: SeverityTier = Field(
        SeverityTier.INFORMATIONAL,
        alias="type",
        description="Severity tier; the wire name is 'type'",
    )
    rating: Optional[Rating] = None
    indicators: Optional[List[str]] = None

    model_config = _WIRE_CONFIG

    @field_validator("severity", mode="before")
    @classmethod
    def map_wire_severity(cls, v: Any) -> Any:
        if isinstance(v, str):
            mapped = _WIRE_SEVERITY.get(v.strip().lower())
            if mapped is not None:
                return mapped
        return v


class Recommendation(BaseModel):
    content: str

    model_config = _WIRE_CONFIG


class Compliance(BaseModel):
    score: int = Field(..., ge=0, le=100)
    level: ComplianceLevel
    summary: str = ""

    model_config = _WIRE_CONFIG

    @field_validator("level", mode="before")
    @classmethod
    def normalise_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, v: Any) -> Any:
        return _round_score(v)


class ComplianceFinding(BaseModel):
    """One checklist requirement and whether the agreement addresses it."""

    requirement: str
    found: bool
    legal_reference: str

    model_config = _WIRE_CONFIG


# ----------------------------------------------------------------------
# Aggregate
# ----------------------------------------------------------------------

class AnalysisResult(BaseModel):
    """
    Structured analysis of one agreement.

    This is the unit exchanged between the orchestrator, reconciliation,
    the renderer and the HTTP layer. Immutable once reconciled.
    """

    property_details: Optional[PropertyDetails] = None
    financial_terms: Optional[FinancialTerms] = None
    lease_period: Optional[LeasePeriod] = None
    parties: Optional[Parties] = None

    insights: List[Insight] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)

    compliance_score: Optional[int] = Field(None, ge=0, le=100)
    compliance: Optional[Compliance] = None

    compliance_checklist: List[ComplianceFinding] = Field(
        default_factory=list,
        description="Deterministic checklist results from pre-screening",
    )
    prescreen_score: Optional[int] = Field(
        None,
        description="Advisory weighted violation score from pre-screening",
    )

    validation_performed: bool = False
    validation_note: Optional[str] = None

    model_config = _WIRE_CONFIG

    @field_validator("compliance_score", mode="before")
    @classmethod
    def round_compliance_score(cls, v: Any) -> Any:
        return _round_score(v)

    @field_validator("recommendations", mode="before")
    @classmethod
    def coerce_recommendations(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"content": item} if isinstance(item, str) else item for item in v]
        return v
