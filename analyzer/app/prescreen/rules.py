"""
Rule tables for deterministic pre-screening of UK tenancy agreements.

Patterns are written case-insensitively and rely on ``.`` not crossing line
breaks, so each match stays within a single line of the agreement.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Pattern, Sequence, Tuple

from analyzer.app.errors import RuleConfigurationError


class ViolationSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


@dataclass(frozen=True)
class ViolationRule:
    pattern: str
    description: str
    severity: ViolationSeverity
    legal_reference: str
    weight: int


@dataclass(frozen=True)
class ComplianceRequirement:
    requirement: str
    pattern: str
    legal_reference: str


@dataclass(frozen=True)
class CompiledRule:
    rule: ViolationRule
    regex: Pattern[str] = field(compare=False)


@dataclass(frozen=True)
class CompiledRequirement:
    requirement: ComplianceRequirement
    regex: Pattern[str] = field(compare=False)


# Numbered clauses at line start, "Clause 7" style references, and "A. " headings
CLAUSE_MARKER_RE: Final = re.compile(
    r"\b(?i:clause|section|paragraph)\s+\d+|(?m:^[ \t]*\d+\.)|\b[A-Z]\.\s+"
)

_CRA = "Consumer Rights Act 2015"
_LTA = "Landlord and Tenant Act 1985"
_TFA = "Tenant Fees Act 2019"
_HA88 = "Housing Act 1988"
_HA04 = "Housing Act 2004"

HIGH = ViolationSeverity.HIGH
MEDIUM = ViolationSeverity.MEDIUM


# ----------------------------------------------------------------------
# Known problematic clauses
# ----------------------------------------------------------------------

DEFAULT_VIOLATION_RULES: Tuple[ViolationRule, ...] = (
    # Unilateral changes
    ViolationRule(
        r"rules.{0,30}regulations.{0,50}(change|amend|modify|alter).{0,50}"
        r"(immediate|without notice|any time|sole discretion)",
        "Rules or regulations can be changed unilaterally by the landlord",
        HIGH, _CRA, 10,
    ),
    ViolationRule(
        r"landlord.{0,30}(change|amend|modify|alter).{0,30}(notice|period|time|notification)",
        "Landlord may unilaterally change tenancy terms",
        HIGH, _CRA, 10,
    ),
    ViolationRule(
        r"(immediately|at any time|without prior notice).{0,50}(change|amend|modify)",
        "Changes allowed without a proper notice period",
        HIGH, _CRA, 9,
    ),
    ViolationRule(
        r"(landlord|lessor).{0,30}(reserves the right|discretion|decision).{0,50}(change|alter|amend)",
        "Landlord reserves the right to change terms at their discretion",
        HIGH, _CRA, 9,
    ),
    # Repair responsibilities
    ViolationRule(
        r"tenant.{0,50}(responsible|liable|pay).{0,50}(all|any).{0,30}(repair|damage|maintenance)",
        "Potentially unfair repair responsibilities placed on the tenant",
        HIGH, f"{_LTA}, Section 11", 8,
    ),
    ViolationRule(
        r"tenant.{0,50}(repair|maintain|fix).{0,50}"
        r"(structure|exterior|roof|walls|foundation|boiler|heating|electrical|plumbing)",
        "Tenant required to repair items that are the landlord's responsibility",
        HIGH, f"{_LTA}, Section 11", 10,
    ),
    ViolationRule(
        r"tenant.{0,30}(cost|expense|pay).{0,30}(wear and tear|fair use|normal deterioration)",
        "Tenant charged for normal wear and tear",
        HIGH, _LTA, 8,
    ),
    # Prohibited fees
    ViolationRule(
        r"(prohibited|banned|not allowed).{0,50}fee|tenant.{0,30}pay.{0,30}"
        r"(admin|administration|setup|reference|inventory|check.?out|check.?in)",
        "Possible prohibited fee",
        HIGH, _TFA, 10,
    ),
    ViolationRule(
        r"fee.{0,50}(cleaning|professional clean|cleaning service)",
        "Professional cleaning fee, likely prohibited",
        HIGH, _TFA, 9,
    ),
    ViolationRule(
        r"charge.{0,50}(renew|renewal|extension|continue|new.{0,10}(tenancy|agreement))",
        "Tenancy renewal fee",
        HIGH, _TFA, 10,
    ),
    ViolationRule(
        r"charge.{0,50}(refer|reference|credit.{0,10}check)",
        "Referencing or credit check fee",
        HIGH, _TFA, 10,
    ),
    # Deposit handling
    ViolationRule(
        r"deposit.{0,50}(not|no).{0,30}protect",
        "Concerning deposit protection clause",
        HIGH, _HA04, 10,
    ),
    ViolationRule(
        r"deposit.{0,50}exceed.{0,30}(5|five|six|6).{0,30}week",
        "Deposit exceeds the five or six week cap",
        HIGH, _TFA, 9,
    ),
    ViolationRule(
        r"deposit.{0,50}(within|after).{0,30}(3[1-9]|[4-9][0-9]|[1-9][0-9]{2,})\s*days",
        "Deposit not protected within 30 days",
        HIGH, _HA04, 9,
    ),
    # Landlord access
    ViolationRule(
        r"landlord.{0,50}(enter|access).{0,50}(any time|without notice)",
        "Unreasonable landlord access clause",
        HIGH, _HA88, 8,
    ),
    ViolationRule(
        r"landlord.{0,50}(enter|access|inspect|view).{0,50}(less than|under|before).{0,20}"
        r"(24|twenty.?four).{0,20}(hour|notice)",
        "Landlord access with less than 24 hours notice",
        HIGH, _HA88, 8,
    ),
    ViolationRule(
        r"tenant.{0,50}(must|shall|required|obliged).{0,30}(allow|permit|enable).{0,30}"
        r"(access|entry|landlord)",
        "Mandatory landlord access without proper notice provisions",
        MEDIUM, _HA88, 6,
    ),
    # Waiving rights
    ViolationRule(
        r"tenant.{0,50}(waive|surrender|give up|relinquish).{0,50}(rights|claims|remedies|recourse)",
        "Clause attempting to waive statutory tenant rights",
        HIGH, _CRA, 10,
    ),
    ViolationRule(
        r"tenant.{0,50}not.{0,30}(withhold|deduct|reduce).{0,50}rent",
        "Clause preventing legitimate rent withholding for repairs",
        HIGH, _LTA, 8,
    ),
    ViolationRule(
        r"tenant.{0,50}no.{0,30}(claim|compensation|damages|reimbursement)",
        "Clause preventing the tenant from claiming compensation",
        HIGH, _CRA, 9,
    ),
    # Penalties and charges
    ViolationRule(
        r"(charge|fee|penalty|fine).{0,50}(late|overdue|unpaid).{0,50}(\$|£|€|USD|GBP|EUR|[0-9]+)",
        "Potentially excessive late payment charges",
        MEDIUM, _CRA, 5,
    ),
    ViolationRule(
        r"(forfeit|lose|surrender).{0,50}deposit",
        "Automatic deposit forfeiture clause",
        HIGH, _TFA, 8,
    ),
    # Other unfair terms
    ViolationRule(
        r"(professional|carpet).{0,30}clean",
        "Mandatory professional cleaning requirement",
        MEDIUM, _CRA, 6,
    ),
    ViolationRule(
        r"(no|not|prevent|prohibit).{0,50}(children|pets|guests|visitors)",
        "Potentially unreasonable ban on children, pets or guests",
        MEDIUM, _CRA, 5,
    ),
)


# ----------------------------------------------------------------------
# Statutory compliance checklist
# ----------------------------------------------------------------------

DEFAULT_COMPLIANCE_CHECKLIST: Tuple[ComplianceRequirement, ...] = (
    ComplianceRequirement(
        "Deposit protection scheme",
        r"deposit.{0,50}(protect|scheme|tds|dps|mydeposits)",
        _HA04,
    ),
    ComplianceRequirement(
        "Notice period (2 months min)",
        r"(notice.{0,30}period|notice.{0,30}to quit).{0,50}(2|two).{0,10}month",
        _HA88,
    ),
    ComplianceRequirement(
        "Repairs responsibility",
        r"(landlord.{0,50}(responsible|undertakes|agrees).{0,50}(repair|maintain))",
        _LTA,
    ),
    ComplianceRequirement(
        "Reasonable notice for access",
        r"(notice.{0,30}(24|twenty.?four).{0,10}hour|reasonable.{0,10}notice)",
        _HA88,
    ),
    ComplianceRequirement(
        "Safety certification",
        r"(gas.{0,30}safety|electrical.{0,30}safety|eicr|cp12|smoke.{0,10}(alarm|detector))",
        "Various safety regulations",
    ),
)


# ----------------------------------------------------------------------
# Compilation (startup-time validation)
# ----------------------------------------------------------------------

def _compile(pattern: str, owner: str) -> Pattern[str]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise RuleConfigurationError(
            f"Invalid pattern for {owner!r}: {exc}"
        ) from exc


def compile_rules(rules: Sequence[ViolationRule]) -> Tuple[CompiledRule, ...]:
    compiled = []
    for rule in rules:
        if rule.weight < 0:
            raise RuleConfigurationError(
                f"Negative weight for {rule.description!r}"
            )
        compiled.append(
            CompiledRule(rule=rule, regex=_compile(rule.pattern, rule.description))
        )
    return tuple(compiled)


def compile_checklist(
    requirements: Sequence[ComplianceRequirement],
) -> Tuple[CompiledRequirement, ...]:
    return tuple(
        CompiledRequirement(
            requirement=req,
            regex=_compile(req.pattern, req.requirement),
        )
        for req in requirements
    )
