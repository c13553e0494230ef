"""URL-based detectors: phishing (blocklist + homograph risk) and IDN homograph attacks."""

from __future__ import annotations

import asyncio
import logging
import warnings
from typing import Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from ..idn.detector import HomographDetector, IDNContext
from ..reputation import DNSBlocklistClient
from ..utils.tasks import bounded
from ..utils.urls import find_urls, normalize_url, url_hostname
from .base import ScanContext
from .models import Finding, IdnHomographFinding, PhishingFinding

logger = logging.getLogger(__name__)

PHISHING_THRESHOLD = 0.6
SUSPICIOUS_THRESHOLD = 0.3


def anchor_display_texts(html: Optional[str]) -> dict[str, str]:
    """Map normalized link targets to the URL or host shown in their anchor text."""
    if not html:
        return {}

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(html, "html.parser")

    displayed: dict[str, str] = {}
    for anchor in soup.find_all("a", href=True):
        shown = find_urls(anchor.get_text(" ", strip=True))
        if not shown:
            continue
        try:
            target = normalize_url(anchor["href"], strip_hash=True)
        except ValueError:
            continue
        displayed.setdefault(target, shown[0])
    return displayed


def _candidate_urls(context: ScanContext) -> list[tuple[str, str, str]]:
    """(original, normalized, hostname) for each distinct URL in text and html."""
    candidates = []
    seen = set()
    for url in find_urls(context.body_text):
        try:
            normalized = normalize_url(url, strip_hash=True)
        except ValueError:
            normalized = url
        if normalized in seen:
            continue
        seen.add(normalized)
        host = url_hostname(normalized)
        if host:
            candidates.append((url, normalized, host))
    return candidates


class PhishingDetector:
    """Flags URLs blocked by a filtering resolver or scored as likely homographs."""

    name = "phishing"

    def __init__(
        self,
        analyzer: HomographDetector,
        blocklist: Optional[DNSBlocklistClient] = None,
        *,
        dns_timeout: float = 5.0,
        sender_reputation: Optional[float] = 0.5,
    ):
        self.analyzer = analyzer
        self.blocklist = blocklist
        self.dns_timeout = dns_timeout
        self.sender_reputation = sender_reputation

    async def _blocked_hosts(self, hosts: list[str]) -> set[str]:
        if not self.blocklist or not hosts:
            return set()
        results = await asyncio.gather(
            *(bounded(self.blocklist.is_blocked(host), self.dns_timeout, label=f"DoH lookup {host}") for host in hosts)
        )
        return {host for host, result in zip(hosts, results) if result.value_or(False)}

    async def detect(self, context: ScanContext) -> list[Finding]:
        message = context.message
        candidates = _candidate_urls(context)
        if not candidates:
            return []

        blocked = await self._blocked_hosts(list(dict.fromkeys(host for _, _, host in candidates)))
        anchors = anchor_display_texts(message.html)
        email_content = message.text or message.html or ""

        findings: list[Finding] = []
        for _, normalized, host in candidates:
            if host in blocked:
                findings.append(PhishingFinding("Blocked by security filters", type="phishing", url=normalized))

            report = self.analyzer.detect(
                host,
                IDNContext(
                    email_content=email_content,
                    display_text=anchors.get(normalized),
                    sender_reputation=self.sender_reputation,
                ),
            )
            risk = report.risk_score * 100
            if report.risk_score > PHISHING_THRESHOLD:
                findings.append(
                    PhishingFinding(
                        f"IDN homograph attack detected (risk: {risk:.1f}%)",
                        type="phishing",
                        url=normalized,
                        details={
                            "riskFactors": list(report.risk_factors),
                            "recommendations": list(report.recommendations),
                            "confidence": report.confidence,
                        },
                    )
                )
            elif report.risk_score > SUSPICIOUS_THRESHOLD:
                findings.append(
                    PhishingFinding(
                        f"Suspicious IDN domain (risk: {risk:.1f}%)",
                        type="suspicious",
                        url=normalized,
                        details={
                            "riskFactors": list(report.risk_factors),
                            "recommendations": list(report.recommendations),
                        },
                    )
                )
        return findings


class IdnHomographAttackDetector:
    """Reports every linked domain whose homograph risk exceeds the suspicious threshold."""

    name = "idn_homograph"

    def __init__(self, analyzer: HomographDetector, *, sender_reputation: Optional[float] = 0.5):
        self.analyzer = analyzer
        self.sender_reputation = sender_reputation

    async def detect(self, context: ScanContext) -> list[Finding]:
        message = context.message
        anchors = anchor_display_texts(message.html)
        findings: list[Finding] = []

        for original, normalized, host in _candidate_urls(context):
            report = self.analyzer.detect(
                host,
                IDNContext(
                    email_content=context.body_text,
                    display_text=anchors.get(normalized),
                    sender_reputation=self.sender_reputation,
                    email_headers=dict(message.headers),
                ),
            )
            if report.risk_score > SUSPICIOUS_THRESHOLD:
                findings.append(
                    IdnHomographFinding(
                        f"Suspicious domain {host} (risk: {report.risk_score * 100:.1f}%)",
                        domain=host,
                        original_url=original,
                        normalized_url=normalized,
                        report=report,
                    )
                )
        return findings
