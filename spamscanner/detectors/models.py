"""Finding types produced by detectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional

from ..idn.detector import DomainRiskReport


@dataclass(frozen=True)
class Finding:
    """Base class for everything a detector can report.

    `category` is the key the finding is serialized under; `label` is the
    phrase used for it in the verdict explanation.
    """

    description: str

    category: ClassVar[str] = ""
    label: ClassVar[str] = ""

    def to_dict(self) -> dict:
        return {"description": self.description}


@dataclass(frozen=True)
class ClassificationFinding(Finding):
    category_name: str = "ham"
    probability: float = 0.5

    category: ClassVar[str] = "classification"
    label: ClassVar[str] = "spam classification"

    @property
    def is_spam(self) -> bool:
        return self.category_name == "spam"

    def to_dict(self) -> dict:
        return {"category": self.category_name, "probability": self.probability}


@dataclass(frozen=True)
class PhishingFinding(Finding):
    type: str = "phishing"
    url: str = ""
    details: Optional[dict] = None

    category: ClassVar[str] = "phishing"
    label: ClassVar[str] = "phishing detected"

    def to_dict(self) -> dict:
        data = {"type": self.type, "url": self.url, "description": self.description}
        if self.details:
            data["details"] = self.details
        return data


@dataclass(frozen=True)
class ExecutableFinding(Finding):
    filename: str = "unknown"
    extension: Optional[str] = None
    detected_type: Optional[str] = None

    category: ClassVar[str] = "executables"
    label: ClassVar[str] = "executable content"

    def to_dict(self) -> dict:
        data = {"type": "executable", "filename": self.filename, "description": self.description}
        if self.extension:
            data["extension"] = self.extension
        if self.detected_type:
            data["detectedType"] = self.detected_type
        return data


@dataclass(frozen=True)
class MacroFinding(Finding):
    subtype: str = ""
    filename: Optional[str] = None

    category: ClassVar[str] = "macros"
    label: ClassVar[str] = "macro detected"

    def to_dict(self) -> dict:
        data = {"type": "macro", "subtype": self.subtype, "description": self.description}
        if self.filename:
            data["filename"] = self.filename
        return data


@dataclass(frozen=True)
class ArbitraryFinding(Finding):
    type: str = "arbitrary"

    category: ClassVar[str] = "arbitrary"
    label: ClassVar[str] = "arbitrary patterns"

    def to_dict(self) -> dict:
        return {"type": self.type, "description": self.description}


@dataclass(frozen=True)
class VirusFinding(Finding):
    filename: str = "unknown"
    viruses: tuple[str, ...] = ()

    category: ClassVar[str] = "viruses"
    label: ClassVar[str] = "virus detected"

    def to_dict(self) -> dict:
        return {
            "type": "virus",
            "filename": self.filename,
            "virus": list(self.viruses),
            "description": self.description,
        }


@dataclass(frozen=True)
class PatternFinding(Finding):
    type: str = "pattern"
    subtype: Optional[str] = None
    count: Optional[int] = None
    path: Optional[str] = None

    category: ClassVar[str] = "patterns"
    label: ClassVar[str] = "suspicious patterns"

    @property
    def is_file_path(self) -> bool:
        return self.type == "file_path"

    def to_dict(self) -> dict:
        data = {"type": self.type, "description": self.description}
        if self.subtype:
            data["subtype"] = self.subtype
        if self.count is not None:
            data["count"] = self.count
        if self.path:
            data["path"] = self.path
        return data


@dataclass(frozen=True)
class IdnHomographFinding(Finding):
    domain: str = ""
    original_url: str = ""
    normalized_url: str = ""
    report: DomainRiskReport = field(default=None)

    category: ClassVar[str] = "idnHomographAttack"
    label: ClassVar[str] = "IDN homograph attack"

    @property
    def risk_score(self) -> float:
        return self.report.risk_score if self.report else 0.0

    def to_dict(self) -> dict:
        report = self.report
        return {
            "domain": self.domain,
            "originalUrl": self.original_url,
            "normalizedUrl": self.normalized_url,
            "riskScore": self.risk_score,
            "riskFactors": list(report.risk_factors) if report else [],
            "recommendations": list(report.recommendations) if report else [],
            "confidence": report.confidence if report else 0.0,
        }


# Explanation order of the verdict message
FINDING_TYPES: tuple[type[Finding], ...] = (
    ClassificationFinding,
    PhishingFinding,
    ExecutableFinding,
    MacroFinding,
    ArbitraryFinding,
    VirusFinding,
    PatternFinding,
    IdnHomographFinding,
)
