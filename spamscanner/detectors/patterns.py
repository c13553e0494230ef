"""Pattern detectors: excessive dates and suspicious file paths."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from .base import ScanContext
from .models import Finding, PatternFinding

logger = logging.getLogger(__name__)

DATE_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(?:\d{1,2}[/-]){2}\d{2,4}\b"),  # MM/DD/YYYY or DD/MM/YYYY
    re.compile(r"\b\d{4}(?:[/-]\d{1,2}){2}\b"),  # YYYY/MM/DD
    re.compile(r"\b\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\s+\d{2,4}\b", re.IGNORECASE),
    re.compile(r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\s+\d{1,2},?\s+\d{2,4}\b", re.IGNORECASE),
]
MAX_DATE_MATCHES = 5

FILE_PATH_PATTERNS: list[re.Pattern] = [
    re.compile(r"[a-z]:\\[^\s<>:\"|?*\\]+(?:\\[^\s<>:\"|?*\\]+)+", re.IGNORECASE),  # Windows
    re.compile(r"(?:^|(?<=\s))/(?!/)[^\s<>:\"|?*]+(?:/[^\s<>:\"|?*]+)+"),  # Unix, not protocol-relative
    re.compile(r"~/[^\s<>:\"|?*]+(?:/[^\s<>:\"|?*]+)*"),  # home directory
]
MAX_FILE_PATHS = 10

SENSITIVE_DIRS = [
    "/etc/",
    "/bin/",
    "/usr/bin/",
    "/usr/sbin/",
    "/sbin/",
    "/var/",
    "/dev/",
    "/private/",
    "c:\\windows\\",
    "c:\\program files\\",
    "c:\\users\\",
    "c:\\programdata\\",
]

DANGEROUS_EXTENSIONS = frozenset(
    {
        "exe", "bat", "cmd", "com", "scr", "pif", "ps1", "vbs", "vbe",
        "js", "jse", "jar", "msi", "msp", "dll", "sys",
    }
)

HTML_TAGS = frozenset(
    {
        "a", "abbr", "address", "area", "article", "aside", "audio", "b", "base", "bdi",
        "bdo", "blockquote", "body", "br", "button", "canvas", "caption", "cite", "code",
        "col", "colgroup", "data", "datalist", "dd", "del", "details", "dfn", "dialog",
        "div", "dl", "dt", "em", "embed", "fieldset", "figcaption", "figure", "footer",
        "form", "h1", "h2", "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "i",
        "iframe", "img", "input", "ins", "kbd", "label", "legend", "li", "link", "main",
        "map", "mark", "meta", "meter", "nav", "noscript", "object", "ol", "optgroup",
        "option", "output", "p", "param", "picture", "pre", "progress", "q", "rp", "rt",
        "ruby", "s", "samp", "script", "section", "select", "small", "source", "span",
        "strong", "style", "sub", "summary", "sup", "svg", "table", "tbody", "td",
        "template", "textarea", "tfoot", "th", "thead", "time", "title", "tr", "track",
        "u", "ul", "var", "video", "wbr",
    }
)

# Markup stripped before path matching
_NOISE_PATTERNS = [
    re.compile(r"<!doctype[^>]*>", re.IGNORECASE),
    re.compile(r"<!--.*?-->", re.DOTALL),
    re.compile(r"{{.*?}}", re.DOTALL),
    re.compile(r"{%.*?%}", re.DOTALL),
    re.compile(r"<%[=-]?.*?%>", re.DOTALL),
]
_SAFE_ATTRIBUTE_VALUES = [
    re.compile(r"(\b(?:href|src|data|content)\s*=\s*\")[^\"]*(\")", re.IGNORECASE),
    re.compile(r"(\b(?:href|src|data|content)\s*=\s*')[^']*(')", re.IGNORECASE),
]
_NULLISH = re.compile(r"\b(?:null|undefined)\b", re.IGNORECASE)

_HTML_TAG_PATH = re.compile(r"^/([a-z\d]+)$", re.IGNORECASE)
_DOMAIN_PATH = re.compile(r"^//[a-z\d.-]+$", re.IGNORECASE)
_LEADING_DOUBLE_SLASH = re.compile(r"^\s*//")
_HTTP_URL = re.compile(r"https?://", re.IGNORECASE)
_REACT_STREAM_MARKER = re.compile(r"/\$-{0,2}")
_W3C_DTD = re.compile(r"w3\.org/(TR|tr)/xhtml1/DTD/", re.IGNORECASE)


class PatternDetector:
    """Date-spam and file-path heuristics.

    File path modes: "off" skips paths, "benign" reports every path found
    (the verdict excludes them), "strict" reports only suspicious paths that
    are not allowlisted.
    """

    name = "patterns"

    def __init__(
        self,
        file_path_mode: str = "strict",
        allowlisted_paths: Optional[Iterable[re.Pattern]] = None,
    ):
        self.file_path_mode = file_path_mode
        self.allowlisted_paths = list(allowlisted_paths or [])

    async def detect(self, context: ScanContext) -> list[Finding]:
        content = context.body_text
        findings: list[Finding] = []

        for pattern in DATE_PATTERNS:
            count = len(pattern.findall(content))
            if count > MAX_DATE_MATCHES:
                findings.append(
                    PatternFinding(
                        "Excessive date patterns detected",
                        type="pattern",
                        subtype="date_spam",
                        count=count,
                    )
                )

        findings.extend(self.file_path_findings(content))
        return findings

    def file_path_findings(self, content: str) -> list[Finding]:
        if self.file_path_mode == "off":
            return []

        for pattern in _NOISE_PATTERNS:
            content = pattern.sub(" ", content)
        for pattern in _SAFE_ATTRIBUTE_VALUES:
            content = pattern.sub(r"\1\2", content)
        content = _NULLISH.sub(" ", content)

        collected: list[tuple[str, bool]] = []
        seen: set[str] = set()
        for pattern in FILE_PATH_PATTERNS:
            for match in pattern.finditer(content):
                path = match.group(0).strip()
                if path in seen or not self.is_valid_path(path):
                    continue
                seen.add(path)
                collected.append((path, self.is_suspicious_path(path, content)))

        findings: list[Finding] = []
        for path, suspicious in collected[:MAX_FILE_PATHS]:
            if self.file_path_mode == "benign":
                findings.append(PatternFinding("Benign file path detected", type="file_path", path=path))
                continue
            if self.is_allowlisted(path):
                continue
            if suspicious:
                findings.append(PatternFinding("Suspicious file path detected", type="file_path", path=path))
        return findings

    @staticmethod
    def is_valid_path(path: str) -> bool:
        """False for HTML closing tags, URLs, domains and other path-shaped noise."""
        tag = _HTML_TAG_PATH.match(path)
        if tag and tag.group(1).lower() in HTML_TAGS:
            return False
        if len(path) < 4:
            return False
        if _LEADING_DOUBLE_SLASH.match(path) or _HTTP_URL.search(path):
            return False
        if _REACT_STREAM_MARKER.search(path) or _W3C_DTD.search(path):
            return False
        if _DOMAIN_PATH.match(path):
            return False
        return "." in path or "/" in path or "\\" in path

    def is_allowlisted(self, path: str) -> bool:
        return any(pattern.search(path) for pattern in self.allowlisted_paths)

    def is_suspicious_path(self, path: str, content: str) -> bool:
        if self.is_allowlisted(path):
            return False

        lower = path.lower()
        if any(directory in lower for directory in SENSITIVE_DIRS):
            return True

        last_segment = re.split(r"[\\/]", lower)[-1]
        extension = last_segment.rsplit(".", 1)[-1] if "." in last_segment else ""
        if extension and extension in DANGEROUS_EXTENSIONS:
            return True

        return content.count(path) >= 2
