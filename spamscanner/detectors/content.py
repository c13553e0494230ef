"""Content detectors: embedded script/macro code and the GTUBE test string."""

from __future__ import annotations

import logging
import re

from .base import ScanContext
from .models import ArbitraryFinding, Finding, MacroFinding

logger = logging.getLogger(__name__)

GTUBE = "XJS*C4JDBQADN1.NSBN3*2IDNEN*GTUBE-STANDARD-ANTI-UBE-TEST-EMAIL*C.34X"

MACRO_ATTACHMENT_EXTENSIONS = frozenset({"vbs", "vba", "ps1", "bat", "cmd", "scr", "pif"})

# (subtype, description, patterns); one finding per family at most
MACRO_FAMILIES: list[tuple[str, str, list[re.Pattern]]] = [
    (
        "vba",
        "VBA macro detected",
        [
            re.compile(r"sub\s+\w+\s*\(", re.IGNORECASE),
            re.compile(r"function\s+\w+\s*\(", re.IGNORECASE),
            re.compile(r"dim\s+\w+\s+as\s+\w+", re.IGNORECASE),
            re.compile(r"application\.run", re.IGNORECASE),
            re.compile(r"shell\s*\(", re.IGNORECASE),
        ],
    ),
    (
        "powershell",
        "PowerShell script detected",
        [
            re.compile(r"powershell", re.IGNORECASE),
            re.compile(r"invoke-expression", re.IGNORECASE),
            re.compile(r"iex\s*\(", re.IGNORECASE),
            re.compile(r"start-process", re.IGNORECASE),
            re.compile(r"new-object\s+system\.", re.IGNORECASE),
        ],
    ),
    (
        "javascript",
        "JavaScript macro detected",
        [
            re.compile(r"eval\s*\(", re.IGNORECASE),
            re.compile(r"document\.write", re.IGNORECASE),
            re.compile(r"activexobject", re.IGNORECASE),
            re.compile(r"wscript\.", re.IGNORECASE),
        ],
    ),
    (
        "batch",
        "Batch script detected",
        [
            re.compile(r"@echo\s+off", re.IGNORECASE),
            re.compile(r"cmd\s*/c", re.IGNORECASE),
            re.compile(r"start\s+/b", re.IGNORECASE),
            re.compile(r"for\s+/[lrf]", re.IGNORECASE),
        ],
    ),
]


class MacroDetector:
    name = "macros"

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    async def detect(self, context: ScanContext) -> list[Finding]:
        if not self.enabled:
            return []

        content = context.message.searchable_text()
        findings: list[Finding] = []

        for subtype, description, patterns in MACRO_FAMILIES:
            if any(pattern.search(content) for pattern in patterns):
                findings.append(MacroFinding(description, subtype=subtype))

        for attachment in context.message.attachments:
            extension = attachment.extension
            if attachment.filename and extension in MACRO_ATTACHMENT_EXTENSIONS:
                findings.append(
                    MacroFinding(
                        f"Macro file attachment detected: {extension}",
                        subtype="attachment",
                        filename=attachment.filename,
                    )
                )
        return findings


class ArbitraryDetector:
    name = "arbitrary"

    async def detect(self, context: ScanContext) -> list[Finding]:
        if GTUBE in context.message.searchable_text():
            return [ArbitraryFinding("GTUBE spam test pattern detected")]
        return []
