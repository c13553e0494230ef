"""Detectors run concurrently for every scan."""

from .attachments import ExecutablesDetector, VirusDetector
from .base import Detector, ScanContext
from .classification import ClassificationDetector
from .content import ArbitraryDetector, MacroDetector
from .models import (
    FINDING_TYPES,
    ArbitraryFinding,
    ClassificationFinding,
    ExecutableFinding,
    Finding,
    IdnHomographFinding,
    MacroFinding,
    PatternFinding,
    PhishingFinding,
    VirusFinding,
)
from .patterns import PatternDetector
from .phishing import IdnHomographAttackDetector, PhishingDetector

__all__ = [
    "ArbitraryDetector",
    "ArbitraryFinding",
    "ClassificationDetector",
    "ClassificationFinding",
    "Detector",
    "ExecutableFinding",
    "ExecutablesDetector",
    "FINDING_TYPES",
    "Finding",
    "IdnHomographAttackDetector",
    "IdnHomographFinding",
    "MacroDetector",
    "MacroFinding",
    "PatternDetector",
    "PatternFinding",
    "PhishingDetector",
    "PhishingFinding",
    "ScanContext",
    "VirusDetector",
    "VirusFinding",
]
