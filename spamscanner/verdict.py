"""Decision engine and the scan verdict it produces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from .detectors.models import (
    FINDING_TYPES,
    ClassificationFinding,
    Finding,
    IdnHomographFinding,
    PatternFinding,
)
from .mail import Message
from .metrics import ScanTimings

logger = logging.getLogger(__name__)

HAM_MESSAGE = "Ham"

FindingFilter = Callable[[Finding], bool]


def join_with_conjunction(items: Sequence[str], conjunction: str = "and") -> str:
    """English list join: "a", "a and b", "a, b, and c"."""
    items = list(items)
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} {conjunction} {items[1]}"
    return f"{', '.join(items[:-1])}, {conjunction} {items[-1]}"


def exclude_file_paths(finding: Finding) -> bool:
    return isinstance(finding, PatternFinding) and finding.is_file_path


class DecisionEngine:
    """Combines findings into a spam/ham decision and an explanation.

    Findings matched by `exclude` are kept in the verdict but do not make a
    message spam.
    """

    def __init__(self, exclude: Optional[FindingFilter] = None):
        self.exclude = exclude

    @classmethod
    def from_config(cls, config) -> "DecisionEngine":
        if config.file_path_detection == "benign":
            return cls(exclude=exclude_file_paths)
        return cls()

    def effective(self, findings: Iterable[Finding]) -> list[Finding]:
        if self.exclude is None:
            return list(findings)
        return [f for f in findings if not self.exclude(f)]

    def reasons(self, classification: Optional[ClassificationFinding], findings: Iterable[Finding]) -> list[str]:
        effective = self.effective(findings)
        reasons: list[str] = []
        for finding_type in FINDING_TYPES:
            if finding_type is ClassificationFinding:
                fired = classification is not None and classification.is_spam
            else:
                fired = any(isinstance(f, finding_type) for f in effective)
            if fired and finding_type.label not in reasons:
                reasons.append(finding_type.label)
        return reasons

    def decide(
        self, classification: Optional[ClassificationFinding], findings: Iterable[Finding]
    ) -> tuple[bool, str]:
        reasons = self.reasons(classification, findings)
        if not reasons:
            return False, HAM_MESSAGE
        return True, f"Spam ({join_with_conjunction(reasons)})"


@dataclass(frozen=True)
class ScanVerdict:
    """Outcome of one scan.

    `findings` holds every detector finding except the classification, which
    is always present and kept separately.
    """

    is_spam: bool
    message: str
    classification: ClassificationFinding
    findings: tuple[Finding, ...] = ()
    links: tuple[str, ...] = ()
    tokens: tuple[str, ...] = ()
    mail: Optional[Message] = None
    metrics: Optional[ScanTimings] = None

    def findings_of(self, finding_type: type[Finding]) -> list[Finding]:
        return [f for f in self.findings if isinstance(f, finding_type)]

    def _idn_summary(self) -> dict:
        domains = self.findings_of(IdnHomographFinding)
        if not domains:
            return {"detected": False, "domains": [], "riskScore": 0, "details": []}

        highest = max(f.risk_score for f in domains)
        factors: list[str] = []
        for finding in domains:
            factors.extend(finding.report.risk_factors if finding.report else ())
        details = [
            f"Found {len(domains)} suspicious domain(s)",
            f"Highest risk score: {highest * 100:.1f}%",
            *dict.fromkeys(factors),
        ]
        return {
            "detected": True,
            "domains": [f.to_dict() for f in domains],
            "riskScore": highest,
            "details": details,
        }

    def to_dict(self) -> dict:
        results: dict = {"classification": self.classification.to_dict()}
        for finding_type in FINDING_TYPES:
            if finding_type in (ClassificationFinding, IdnHomographFinding):
                continue
            results[finding_type.category] = [f.to_dict() for f in self.findings_of(finding_type)]
        results[IdnHomographFinding.category] = self._idn_summary()

        data = {
            "isSpam": self.is_spam,
            "message": self.message,
            "results": results,
            "links": list(self.links),
            "tokens": list(self.tokens),
        }
        if self.metrics is not None:
            data["metrics"] = self.metrics.to_dict()
        return data
