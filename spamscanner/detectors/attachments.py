"""Attachment detectors: executable content and virus scanning."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

import filetype

from ..config import DEFAULT_EXECUTABLES
from ..utils.tasks import TaskStatus, bounded
from ..virus import ClamdClient
from .base import ScanContext
from .models import ExecutableFinding, Finding, VirusFinding

logger = logging.getLogger(__name__)


def sniff_extension(content: Optional[bytes]) -> Optional[str]:
    """Extension implied by the content's magic bytes, if recognizable."""
    if not content:
        return None
    kind = filetype.guess(content)
    return kind.extension.lower() if kind else None


class ExecutablesDetector:
    """Flags attachments named or shaped like executables."""

    name = "executables"

    def __init__(self, executables: Optional[Iterable[str]] = None):
        self.executables = {e.lower().lstrip(".") for e in (executables or DEFAULT_EXECUTABLES)}

    async def detect(self, context: ScanContext) -> list[Finding]:
        findings: list[Finding] = []
        for attachment in context.message.attachments:
            extension = attachment.extension
            if attachment.filename and extension in self.executables:
                findings.append(
                    ExecutableFinding(
                        "Executable file attachment",
                        filename=attachment.filename,
                        extension=extension,
                    )
                )

            detected = sniff_extension(attachment.content)
            if detected and detected in self.executables:
                findings.append(
                    ExecutableFinding(
                        "Executable content detected",
                        filename=attachment.filename or "unknown",
                        detected_type=detected,
                    )
                )
        return findings


class VirusDetector:
    """Streams each attachment to clamd; infected attachments become findings."""

    name = "viruses"

    def __init__(self, client: Optional[ClamdClient], *, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout

    async def detect(self, context: ScanContext) -> list[Finding]:
        if self.client is None:
            return []
        attachments = [a for a in context.message.attachments if a.content]
        if not attachments:
            return []

        results = await asyncio.gather(
            *(
                bounded(self.client.scan_bytes(a.content), self.timeout, label=f"virus scan {a.filename or 'attachment'}")
                for a in attachments
            )
        )

        findings: list[Finding] = []
        for attachment, result in zip(attachments, results):
            if result.status is not TaskStatus.OK:
                continue
            if result.value.is_infected:
                findings.append(
                    VirusFinding(
                        "Virus detected in attachment",
                        filename=attachment.filename or "unknown",
                        viruses=result.value.viruses or ("Unknown virus",),
                    )
                )
        return findings
