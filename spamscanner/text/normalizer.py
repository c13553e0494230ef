"""Text normalization: markup stripping, width folding, contractions and
sensitive-pattern substitution applied before tokenization."""

from __future__ import annotations

import logging
import re
import warnings
from pathlib import Path
from typing import Mapping, Optional

import contractions
import yaml
from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning

from ..utils.tasks import Outcome

logger = logging.getLogger(__name__)

# Slang shorthand expanded during preprocessing (never by the tokenizer).
DEFAULT_REPLACEMENTS: dict[str, str] = {
    "u": "you",
    "ur": "your",
    "r": "are",
    "n": "and",
    "w/": "with",
    "b4": "before",
    "2": "to",
    "4": "for",
}

_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"

# Order matters: URLs and emails are replaced before the IP/float patterns can
# eat their dotted components.
SENSITIVE_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("URL_LINK", re.compile(r"\b(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)),
    ("EMAIL_ADDRESS", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")),
    ("MAC_ADDRESS", re.compile(r"\b(?:[0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}\b")),
    ("IP_ADDRESS", re.compile(r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b")),
    (
        "DATE_PATTERN",
        re.compile(
            rf"\b(?:\d{{1,4}}[-/.]\d{{1,2}}[-/.]\d{{1,4}}|{_MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}})\b",
            re.IGNORECASE,
        ),
    ),
    ("CREDIT_CARD", re.compile(r"\b(?:\d{4}[- ]?){3}\d{4}\b")),
    ("PHONE_NUMBER", re.compile(r"(?<!\w)(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")),
    ("BITCOIN_ADDRESS", re.compile(r"\b(?:bc1[a-z0-9]{25,59}|[13][a-km-zA-HJ-NP-Z1-9]{25,34})\b")),
    ("HEX_COLOR", re.compile(r"(?<!\w)#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})\b")),
    ("FLOATING_POINT", re.compile(r"\b\d+\.\d+\b")),
]

_NULLISH = re.compile(r"\b(?:null|undefined)\b", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

_FULLWIDTH_TABLE = {code: code - 0xFEE0 for code in range(0xFF01, 0xFF5F)}
_FULLWIDTH_TABLE[0x3000] = 0x20


def strip_markup(text: str) -> str:
    """Return the visible text of an HTML fragment."""
    if not text:
        return ""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ")


def fold_fullwidth(text: str) -> str:
    """Map full-width ASCII variants (U+FF01-U+FF5E) and U+3000 to half-width."""
    return text.translate(_FULLWIDTH_TABLE)


def expand_contractions(text: str) -> Outcome[str]:
    """Expand English contractions ("don't" -> "do not"); slang is left alone."""
    if not text:
        return Outcome.primary(text)
    try:
        return Outcome.primary(contractions.fix(text, slang=False))
    except Exception as exc:
        logger.debug("Contraction expansion failed: %s", exc)
        return Outcome.fallback(text, exc)


def load_replacements(path: Optional[Path]) -> Outcome[dict[str, str]]:
    """Load a replacement table (YAML or JSON mapping) or fall back to the defaults."""
    if path is None:
        return Outcome.default(dict(DEFAULT_REPLACEMENTS), "no replacements file configured")

    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to load replacements from %s: %s", path, exc)
        return Outcome.fallback(dict(DEFAULT_REPLACEMENTS), exc)

    if not isinstance(data, dict) or not data:
        logger.warning("Replacements file %s must contain a non-empty mapping", path)
        return Outcome.fallback(dict(DEFAULT_REPLACEMENTS), "invalid replacements mapping")

    return Outcome.primary({str(k): str(v) for k, v in data.items() if str(k).strip()})


class Normalizer:
    """Preprocessing applied to message text before it is tokenized."""

    def __init__(
        self,
        replacements: Optional[Mapping[str, str]] = None,
        *,
        advanced_patterns: bool = True,
    ):
        table = DEFAULT_REPLACEMENTS if replacements is None else replacements
        self.replacements = dict(table)
        self.advanced_patterns = advanced_patterns
        self._replacement_patterns = [
            (re.compile(rf"(?<!\w){re.escape(original)}(?!\w)", re.IGNORECASE), replacement)
            for original, replacement in self.replacements.items()
        ]

    @classmethod
    def from_config(cls, config) -> "Normalizer":
        outcome = load_replacements(config.replacements_path)
        return cls(outcome.value, advanced_patterns=config.enable_advanced_pattern_recognition)

    def substitute_patterns(self, text: str) -> str:
        """Replace dates, card numbers, addresses etc. with placeholder words."""
        for placeholder, pattern in SENSITIVE_PATTERNS:
            text = pattern.sub(f" {placeholder} ", text)
        return text

    def apply_replacements(self, text: str) -> str:
        for pattern, replacement in self._replacement_patterns:
            text = pattern.sub(replacement, text)
        return text

    def preprocess(self, text: Optional[str]) -> str:
        if not text or not text.strip():
            return ""

        if self.advanced_patterns:
            text = self.substitute_patterns(text)
        text = self.apply_replacements(text)
        text = _NULLISH.sub(" ", text)
        return _WHITESPACE.sub(" ", text).strip()
