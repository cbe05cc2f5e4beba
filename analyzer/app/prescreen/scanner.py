from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from analyzer.app.prescreen.rules import (
    CLAUSE_MARKER_RE,
    DEFAULT_COMPLIANCE_CHECKLIST,
    DEFAULT_VIOLATION_RULES,
    ComplianceRequirement,
    ViolationRule,
    ViolationSeverity,
    compile_checklist,
    compile_rules,
)
from analyzer.app.schemas.analysis import ComplianceFinding

logger = logging.getLogger(__name__)

# Segmentation kicks in at this many clause markers
MIN_CLAUSE_MARKERS = 4

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class ClauseSpan:
    """A slice of the document between two clause markers (1-based number)."""

    number: Optional[int]
    start: int
    text: str


@dataclass(frozen=True)
class ViolationFinding:
    description: str
    matched_text: str
    severity: ViolationSeverity
    legal_reference: str
    weight: int
    position: int
    clause_number: Optional[int] = None


@dataclass(frozen=True)
class PrescreenReport:
    """
    Outcome of one deterministic scan.

    ``weighted_score`` is advisory only; it never replaces the compliance
    score produced by reconciliation.
    """

    violations: List[ViolationFinding] = field(default_factory=list)
    compliance_findings: List[ComplianceFinding] = field(default_factory=list)
    weighted_score: int = 0
    clauses_examined: int = 0
    checklist_score: Optional[int] = None

    @property
    def missing_requirements(self) -> List[ComplianceFinding]:
        return [f for f in self.compliance_findings if not f.found]


def segment_clauses(text: str) -> List[ClauseSpan]:
    """
    Split ``text`` at clause markers.

    Returns a single whole-document span (``number=None``) when fewer than
    ``MIN_CLAUSE_MARKERS`` markers are present.
    """
    markers = list(CLAUSE_MARKER_RE.finditer(text))
    if len(markers) < MIN_CLAUSE_MARKERS:
        return [ClauseSpan(number=None, start=0, text=text)]

    spans = []
    for i, marker in enumerate(markers):
        start = marker.start()
        end = markers[i + 1].start() if i + 1 < len(markers) else len(text)
        spans.append(ClauseSpan(number=i + 1, start=start, text=text[start:end]))
    return spans


class RuleEngine:
    """
    Pattern and weight based pre-screener.

    The violation scan and the compliance checklist are enabled
    independently. Patterns are compiled at construction, so a malformed
    table fails at startup rather than mid-request.
    """

    def __init__(
        self,
        *,
        rules: Sequence[ViolationRule] = DEFAULT_VIOLATION_RULES,
        checklist: Sequence[ComplianceRequirement] = DEFAULT_COMPLIANCE_CHECKLIST,
        enable_violation_scan: bool = False,
        enable_compliance_checklist: bool = True,
    ) -> None:
        self._rules = compile_rules(rules)
        self._checklist = compile_checklist(checklist)
        self._enable_violation_scan = enable_violation_scan
        self._enable_compliance_checklist = enable_compliance_checklist

    @property
    def violation_scan_enabled(self) -> bool:
        return self._enable_violation_scan

    def scan(self, text: str) -> PrescreenReport:
        violations: List[ViolationFinding] = []
        clauses_examined = 0

        if self._enable_violation_scan:
            spans = segment_clauses(text)
            clauses_examined = sum(1 for s in spans if s.number is not None)
            for span in spans:
                violations.extend(self._scan_span(span))

        findings: List[ComplianceFinding] = []
        checklist_score: Optional[int] = None
        if self._enable_compliance_checklist and self._checklist:
            findings = [
                ComplianceFinding(
                    requirement=item.requirement.requirement,
                    found=item.regex.search(text) is not None,
                    legal_reference=item.requirement.legal_reference,
                )
                for item in self._checklist
            ]
            found = sum(1 for f in findings if f.found)
            checklist_score = round(found / len(findings) * 100)

        weighted_score = sum(v.weight for v in violations)

        logger.info(
            "prescreen_completed",
            extra={
                "violation_count": len(violations),
                "weighted_score": weighted_score,
                "clauses_examined": clauses_examined,
                "checklist_score": checklist_score,
            },
        )

        return PrescreenReport(
            violations=violations,
            compliance_findings=findings,
            weighted_score=weighted_score,
            clauses_examined=clauses_examined,
            checklist_score=checklist_score,
        )

    def _scan_span(self, span: ClauseSpan) -> List[ViolationFinding]:
        found = []
        for compiled in self._rules:
            match = compiled.regex.search(span.text)
            if match is None:
                continue
            rule = compiled.rule
            found.append(
                ViolationFinding(
                    description=rule.description,
                    matched_text=_WHITESPACE_RE.sub(" ", match.group(0)).strip(),
                    severity=rule.severity,
                    legal_reference=rule.legal_reference,
                    weight=rule.weight,
                    position=span.start + match.start(),
                    clause_number=span.number,
                )
            )
        return found
