"""Tests for the individual detectors."""

import re

import pytest

from spamscanner.classifier import NaiveBayesClassifier
from spamscanner.detectors import (
    ArbitraryDetector,
    ArbitraryFinding,
    ClassificationDetector,
    ExecutableFinding,
    ExecutablesDetector,
    IdnHomographAttackDetector,
    IdnHomographFinding,
    MacroDetector,
    MacroFinding,
    PatternDetector,
    PatternFinding,
    PhishingDetector,
    PhishingFinding,
    ScanContext,
    VirusDetector,
    VirusFinding,
)
from spamscanner.detectors.content import GTUBE
from spamscanner.detectors.phishing import anchor_display_texts
from spamscanner.exceptions import VirusScanError
from spamscanner.idn import HomographDetector
from spamscanner.idn.detector import IDNContext
from spamscanner.mail import Attachment, Message
from spamscanner.virus import VirusScanResult

PE_HEADER = b"MZ" + b"\x90\x00" * 30 + b"\x00" * 60 + b"PE\x00\x00" + b"\x00" * 100


def _context(text=None, html=None, attachments=(), header_lines=(), tokens=()):
    message = Message(text=text, html=html, header_lines=tuple(header_lines), attachments=tuple(attachments))
    return ScanContext(message=message, tokens=tuple(tokens))


class _FakeBlocklist:
    def __init__(self, blocked=(), fail=False):
        self.blocked = set(blocked)
        self.fail = fail
        self.calls: list[str] = []

    async def is_blocked(self, hostname):
        self.calls.append(hostname)
        if self.fail:
            raise RuntimeError("resolver down")
        return hostname in self.blocked


class _FakeClamd:
    def __init__(self, infected=(), fail=False):
        self.infected = set(infected)
        self.fail = fail

    async def scan_bytes(self, data):
        if self.fail:
            raise VirusScanError("clamd unavailable")
        if data in self.infected:
            return VirusScanResult(True, ("Eicar-Signature",))
        return VirusScanResult()


# Classification


@pytest.mark.asyncio
async def test_classification_detector_reports_category():
    classifier = NaiveBayesClassifier()
    classifier.learn("spam", "free money winner")
    classifier.learn("ham", "project status update")

    findings = await ClassificationDetector(classifier).detect(_context(tokens=["free", "money"]))
    assert len(findings) == 1
    assert findings[0].category_name == "spam"
    assert findings[0].is_spam


# Phishing


def test_anchor_display_texts_only_keeps_url_like_text():
    html = (
        '<a href="https://evil.example.net/login">https://paypal.com</a>'
        '<a href="https://example.org/">click here</a>'
    )
    assert anchor_display_texts(html) == {"https://evil.example.net/login": "https://paypal.com"}


def test_anchor_display_text_keeps_only_the_shown_url():
    html = '<p><a href="https://paypal.com">Visit paypal.com now</a></p>'
    shown = anchor_display_texts(html)
    assert shown == {"https://paypal.com": "paypal.com"}

    report = HomographDetector(brands=[]).detect("paypal.com", IDNContext(display_text=shown["https://paypal.com"]))
    assert "Display text differs from actual domain" not in report.risk_factors


@pytest.mark.asyncio
async def test_blocked_host_is_phishing():
    blocklist = _FakeBlocklist(blocked={"malware.example.com"})
    detector = PhishingDetector(HomographDetector(brands=[]), blocklist)

    findings = await detector.detect(_context(text="see https://malware.example.com/x and https://example.org"))
    assert findings == [
        PhishingFinding("Blocked by security filters", type="phishing", url="https://malware.example.com/x")
    ]
    assert sorted(blocklist.calls) == ["example.org", "malware.example.com"]


@pytest.mark.asyncio
async def test_resolver_failure_is_not_a_finding():
    detector = PhishingDetector(HomographDetector(brands=[]), _FakeBlocklist(fail=True))
    assert await detector.detect(_context(text="https://example.org")) == []


@pytest.mark.asyncio
async def test_homograph_link_is_phishing():
    detector = PhishingDetector(HomographDetector(brands=["apple"]))
    findings = await detector.detect(_context(text="Sign in at https://xn--80ak6aa92e.com/account"))
    assert len(findings) == 1
    assert findings[0].type == "phishing"
    assert findings[0].details["riskFactors"]


@pytest.mark.asyncio
async def test_no_links_no_phishing():
    detector = PhishingDetector(HomographDetector(), _FakeBlocklist(blocked={"x"}))
    assert await detector.detect(_context(text="plain text only")) == []


@pytest.mark.asyncio
async def test_idn_homograph_detector():
    detector = IdnHomographAttackDetector(HomographDetector(brands=["apple"]))
    findings = await detector.detect(
        _context(text="https://xn--80ak6aa92e.com/login and https://example.org")
    )
    assert len(findings) == 1
    finding = findings[0]
    assert isinstance(finding, IdnHomographFinding)
    assert finding.domain == "xn--80ak6aa92e.com"
    assert finding.risk_score > 0.6
    assert finding.to_dict()["normalizedUrl"] == "https://xn--80ak6aa92e.com/login"


# Attachments


@pytest.mark.asyncio
async def test_executable_by_extension_and_content():
    detector = ExecutablesDetector()
    attachments = [
        Attachment("invoice.exe", b"not really", "application/octet-stream"),
        Attachment("invoice.pdf", PE_HEADER, "application/pdf"),
        Attachment("notes.txt", b"hello", "text/plain"),
    ]
    findings = await detector.detect(_context(attachments=attachments))

    assert ExecutableFinding("Executable file attachment", filename="invoice.exe", extension="exe") in findings
    assert any(f.detected_type == "exe" and f.filename == "invoice.pdf" for f in findings)
    assert not any(f.filename == "notes.txt" for f in findings)


@pytest.mark.asyncio
async def test_virus_detector_reports_infected_attachments():
    attachments = [Attachment("eicar.com", b"infected"), Attachment("clean.txt", b"clean")]
    detector = VirusDetector(_FakeClamd(infected={b"infected"}))

    findings = await detector.detect(_context(attachments=attachments))
    assert findings == [VirusFinding("Virus detected in attachment", filename="eicar.com", viruses=("Eicar-Signature",))]


@pytest.mark.asyncio
async def test_virus_detector_tolerates_clamd_failure():
    detector = VirusDetector(_FakeClamd(fail=True))
    assert await detector.detect(_context(attachments=[Attachment("a.bin", b"x")])) == []
    assert await VirusDetector(None).detect(_context(attachments=[Attachment("a.bin", b"x")])) == []


# Content


@pytest.mark.asyncio
async def test_macro_detector_families():
    text = "@echo off\ncmd /c del *.*\npowershell -enc AAAA"
    findings = await MacroDetector().detect(_context(text=text))
    subtypes = {f.subtype for f in findings}
    assert subtypes == {"batch", "powershell"}


@pytest.mark.asyncio
async def test_macro_detector_attachment_and_switch():
    context = _context(text="hello", attachments=[Attachment("run.vbs", b"x")])
    findings = await MacroDetector().detect(context)
    assert findings == [MacroFinding("Macro file attachment detected: vbs", subtype="attachment", filename="run.vbs")]
    assert await MacroDetector(enabled=False).detect(context) == []


@pytest.mark.asyncio
async def test_gtube_in_header_lines():
    context = _context(text="hello", header_lines=[f"X-Test: {GTUBE}"])
    assert await ArbitraryDetector().detect(context) == [ArbitraryFinding("GTUBE spam test pattern detected")]
    assert await ArbitraryDetector().detect(_context(text="hello")) == []


# Patterns


@pytest.mark.asyncio
async def test_excessive_dates():
    text = " ".join(f"01/{day:02d}/2024" for day in range(1, 8))
    findings = await PatternDetector(file_path_mode="off").detect(_context(text=text))
    assert findings == [
        PatternFinding("Excessive date patterns detected", type="pattern", subtype="date_spam", count=7)
    ]


@pytest.mark.asyncio
async def test_suspicious_file_paths_in_strict_mode():
    text = "Run C:\\Windows\\System32\\evil.exe or open /home/user/report.txt"
    findings = await PatternDetector().detect(_context(text=text))
    paths = [f.path for f in findings if f.is_file_path]
    assert paths == ["C:\\Windows\\System32\\evil.exe"]


@pytest.mark.asyncio
async def test_benign_mode_reports_every_path():
    text = "see /home/user/report.txt and /etc/passwd/shadow"
    findings = await PatternDetector(file_path_mode="benign").detect(_context(text=text))
    assert {f.path for f in findings} == {"/home/user/report.txt", "/etc/passwd/shadow"}
    assert all(f.description == "Benign file path detected" for f in findings)


@pytest.mark.asyncio
async def test_closing_tags_and_urls_are_not_paths():
    html = '<div><a href="https://example.com/a/b">x</a></div> //cdn.example.com'
    assert await PatternDetector().detect(_context(html=html)) == []


def test_is_valid_path():
    assert not PatternDetector.is_valid_path("/div")
    assert not PatternDetector.is_valid_path("https://example.com/a")
    assert not PatternDetector.is_valid_path("//example.com")
    assert PatternDetector.is_valid_path("/usr/bin/python")


def test_allowlisted_paths_are_not_suspicious():
    detector = PatternDetector(allowlisted_paths=[re.compile(r"^/etc/hosts$")])
    assert not detector.is_suspicious_path("/etc/hosts", "")
    assert detector.is_suspicious_path("/etc/shadow", "")
    assert detector.is_suspicious_path("/tmp/payload.ps1", "")
    assert detector.is_suspicious_path("/tmp/x.txt", "/tmp/x.txt /tmp/x.txt")
    assert not detector.is_suspicious_path("/tmp/x.txt", "/tmp/x.txt")
