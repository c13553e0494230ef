"""IDN homograph and brand-impersonation risk scoring for domains."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

import idna
from rapidfuzz.distance import Levenshtein

from ..config import DEFAULT_BRANDS, DEFAULT_IDN_WHITELIST, DEFAULT_URGENCY_PATTERNS
from ..utils.urls import canonicalize_domain, to_ascii_host

logger = logging.getLogger(__name__)

_TLD_SUFFIX = re.compile(r"\.(com|org|net|edu|gov)$")

SCRIPT_RANGES: list[tuple[str, int, int]] = [
    ("Latin", 0x41, 0x5A),
    ("Latin", 0x61, 0x7A),
    ("Cyrillic", 0x0400, 0x04FF),
    ("Greek", 0x0370, 0x03FF),
    ("CJK", 0x4E00, 0x9FFF),
    ("Hebrew", 0x0590, 0x05FF),
    ("Arabic", 0x0600, 0x06FF),
]


@dataclass
class IDNContext:
    """Message context a domain was found in."""

    email_content: Optional[str] = None
    display_text: Optional[str] = None
    sender_reputation: Optional[float] = None
    email_headers: Optional[dict] = None


@dataclass(frozen=True)
class DomainRiskReport:
    """Result of analyzing one domain."""

    domain: str
    is_internationalized: bool
    risk_score: float
    risk_factors: tuple[str, ...] = ()
    confidence: float = 0.0
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "isIDN": self.is_internationalized,
            "riskScore": self.risk_score,
            "riskFactors": list(self.risk_factors),
            "recommendations": list(self.recommendations),
            "confidence": self.confidence,
        }


@dataclass
class _Analysis:
    score: float = 0.0
    factors: list[str] = field(default_factory=list)
    brand_matched: bool = False

    def add(self, score: float, factors: Iterable[str]) -> None:
        self.score += max(score, 0.0)
        self.factors.extend(factors)


def decode_punycode(domain: str) -> str:
    """Decode xn-- labels to Unicode. Raises ValueError when a label is not valid punycode."""
    try:
        return idna.decode(domain)
    except (idna.IDNAError, UnicodeError) as exc:
        logger.debug("IDNA decode of %s failed (%s); trying raw punycode", domain, exc)

    labels = []
    for label in domain.split("."):
        if label.lower().startswith("xn--"):
            try:
                label = label[4:].encode("ascii").decode("punycode")
            except UnicodeError as exc:
                raise ValueError(f"invalid punycode label {label!r}") from exc
        labels.append(label)
    return ".".join(labels)


class HomographDetector:
    """Scores a domain for IDN homograph and brand-impersonation risk.

    Contributions are added in a fixed order (internationalized, confusable
    characters, brand similarity, script mixing, message context, punycode)
    and the total is clamped to 1.0 at the end.
    """

    # Characters rendered like Latin letters or digits
    CONFUSABLES = {
        "а": "a",  # Cyrillic а
        "е": "e",  # Cyrillic е
        "о": "o",  # Cyrillic о
        "р": "p",  # Cyrillic р
        "с": "c",  # Cyrillic с
        "х": "x",  # Cyrillic х
        "у": "y",  # Cyrillic у
        "ӏ": "l",  # Cyrillic palochka
        "і": "i",  # Cyrillic і
        "ј": "j",  # Cyrillic ј
        "ѕ": "s",  # Cyrillic ѕ
        "ԁ": "d",  # Cyrillic ԁ
        "α": "a",  # Greek α
        "ο": "o",  # Greek ο
        "ρ": "p",  # Greek ρ
        "υ": "u",  # Greek υ
        "ν": "v",  # Greek ν
        "ι": "i",  # Greek ι
        "𝐚": "a",
        "𝐛": "b",
        "𝐜": "c",
        "𝐝": "d",
        "𝐞": "e",
        "𝟎": "0",
        "𝟏": "1",
        "𝟐": "2",
        "𝟑": "3",
        "𝟒": "4",
        "ℯ": "e",
        "ℊ": "g",
        "ℎ": "h",
        "ℓ": "l",
        "ℴ": "o",
        "ⅰ": "i",
        "ⅱ": "ii",
        "ⅲ": "iii",
        "ⅳ": "iv",
        "ⅴ": "v",
    }

    def __init__(
        self,
        *,
        strict_mode: bool = False,
        enable_whitelist: bool = True,
        enable_brand_protection: bool = True,
        enable_context_analysis: bool = True,
        similarity_threshold: float = 0.8,
        brands: Optional[Iterable[str]] = None,
        whitelist: Optional[Iterable[str]] = None,
        urgency_patterns: Optional[Iterable[str]] = None,
        enable_caching: bool = True,
    ):
        self.strict_mode = strict_mode
        self.enable_whitelist = enable_whitelist
        self.enable_brand_protection = enable_brand_protection
        self.enable_context_analysis = enable_context_analysis
        self.similarity_threshold = similarity_threshold
        self.brands = [b.lower() for b in (DEFAULT_BRANDS if brands is None else brands)]
        self.whitelist = {d.lower() for d in (DEFAULT_IDN_WHITELIST if whitelist is None else whitelist)}
        self.urgency_patterns = [
            re.compile(p, re.IGNORECASE)
            for p in (DEFAULT_URGENCY_PATTERNS if urgency_patterns is None else urgency_patterns)
        ]
        self.enable_caching = enable_caching
        self._cache: dict[tuple[str, str], DomainRiskReport] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "HomographDetector":
        return cls(
            strict_mode=config.strict_idn_detection,
            brands=config.brands,
            whitelist=config.idn_whitelist,
            urgency_patterns=config.urgency_patterns,
            enable_caching=config.enable_caching,
        )

    def detect(self, domain: str, context: Optional[IDNContext] = None) -> DomainRiskReport:
        """Analyze `domain`, memoized per (domain, context)."""
        domain = (domain or "").strip().lower()
        context = context or IDNContext()

        if not self.enable_caching:
            return self._analyze(domain, context)

        key = (domain, self._context_hash(context))
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        report = self._analyze(domain, context)
        with self._lock:
            # First writer wins; entries never change once stored.
            return self._cache.setdefault(key, report)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    @staticmethod
    def _context_hash(context: IDNContext) -> str:
        payload = json.dumps(asdict(context), sort_keys=True, default=str)
        return hashlib.md5(payload.encode("utf-8")).hexdigest()[:8]

    def _analyze(self, domain: str, context: IDNContext) -> DomainRiskReport:
        is_idn = self.is_internationalized(domain)

        if self.enable_whitelist and self.is_whitelisted(domain):
            return DomainRiskReport(
                domain=domain,
                is_internationalized=is_idn,
                risk_score=0.0,
                confidence=1.0,
                recommendations=("Domain is whitelisted as legitimate",),
            )

        analysis = _Analysis()

        if is_idn:
            factor = "Contains non-ASCII characters" if not domain.isascii() else "Contains punycode label"
            analysis.add(0.3, [factor])

        analysis.add(*self._check_confusables(domain))

        if self.enable_brand_protection:
            brand_score, brand_factors = self._check_brand_similarity(domain)
            analysis.add(brand_score, brand_factors)
            analysis.brand_matched = bool(brand_factors)

        analysis.add(*self._check_script_mixing(domain))

        if self.enable_context_analysis:
            analysis.add(*self._check_context(domain, context))

        if "xn--" in domain:
            analysis.add(*self._check_punycode(domain))

        risk_score = min(max(analysis.score, 0.0), 1.0)
        return DomainRiskReport(
            domain=domain,
            is_internationalized=is_idn,
            risk_score=risk_score,
            risk_factors=tuple(dict.fromkeys(analysis.factors)),
            confidence=min(risk_score, 1.0),
            recommendations=self._recommendations(risk_score, is_idn, analysis.brand_matched),
        )

    @staticmethod
    def is_internationalized(domain: str) -> bool:
        return "xn--" in domain or not domain.isascii()

    def is_whitelisted(self, domain: str) -> bool:
        return domain in self.whitelist or to_ascii_host(domain) in self.whitelist

    def _check_confusables(self, text: str) -> tuple[float, list[str]]:
        """Score look-alike characters by their share of the string."""
        factors = []
        count = 0
        for char in text:
            latin = self.CONFUSABLES.get(char)
            if latin is not None:
                count += 1
                factors.append(f"Confusable character: {char} → {latin}")

        if not count:
            return 0.0, []
        total = len(text)
        factors.append(f"{count}/{total} characters are confusable")
        return min(count / total * 0.8, 0.6), factors

    def normalize_domain(self, domain: str) -> str:
        """Fold a domain to the Latin form used for brand comparison."""
        normalized = domain.lower()
        if "xn--" in normalized:
            try:
                normalized = decode_punycode(normalized).lower()
            except ValueError:
                pass
        normalized = "".join(self.CONFUSABLES.get(char, char) for char in normalized)
        return _TLD_SUFFIX.sub("", normalized)

    def _check_brand_similarity(self, domain: str) -> tuple[float, list[str]]:
        score = 0.0
        factors = []
        clean = self.normalize_domain(domain)

        for brand in self.brands:
            similarity = Levenshtein.normalized_similarity(clean, brand)
            if similarity > self.similarity_threshold:
                score = max(score, similarity * 0.7)
                factors.append(f"High similarity to {brand}: {similarity * 100:.1f}%")

        return score, factors

    @staticmethod
    def detect_scripts(text: str) -> list[str]:
        """Scripts present in `text`, in first-seen order."""
        scripts: list[str] = []
        for char in text:
            code = ord(char)
            for name, low, high in SCRIPT_RANGES:
                if low <= code <= high:
                    if name not in scripts:
                        scripts.append(name)
                    break
        return scripts

    def _check_script_mixing(self, domain: str) -> tuple[float, list[str]]:
        scripts = self.detect_scripts(domain)
        if len(scripts) <= 1:
            return 0.0, []

        factors = [f"Mixed scripts detected: {', '.join(scripts)}"]
        if "Latin" in scripts and ("Cyrillic" in scripts or "Greek" in scripts):
            factors.append("Suspicious Latin/Cyrillic or Latin/Greek mixing")
            return 0.4, factors
        return 0.2, factors

    def _check_context(self, domain: str, context: IDNContext) -> tuple[float, list[str]]:
        score = 0.0
        factors = []

        if context.display_text:
            shown = to_ascii_host(canonicalize_domain(context.display_text))
            actual = to_ascii_host(canonicalize_domain(domain))
            if shown != actual:
                score += 0.3
                factors.append("Display text differs from actual domain")

        if context.sender_reputation is not None and context.sender_reputation < 0.5:
            score += 0.2
            factors.append("Low sender reputation")

        if context.email_content:
            for pattern in self.urgency_patterns:
                if pattern.search(context.email_content):
                    score += 0.1
                    factors.append(f"Suspicious email pattern: {pattern.pattern}")

        return score, factors

    def _check_punycode(self, domain: str) -> tuple[float, list[str]]:
        try:
            decoded = decode_punycode(domain)
        except ValueError:
            return (0.3 if self.strict_mode else 0.2), ["Invalid punycode encoding"]

        factors = [f"Punycode decoded: {decoded}"]
        confusable_score, confusable_factors = self._check_confusables(decoded)
        factors.extend(confusable_factors)
        return confusable_score * 0.8, factors

    @staticmethod
    def _recommendations(risk_score: float, is_idn: bool, brand_matched: bool) -> tuple[str, ...]:
        recommendations = []
        if risk_score > 0.8:
            recommendations.append("HIGH RISK: Likely homograph attack - block or quarantine")
        elif risk_score > 0.6:
            recommendations.append("MEDIUM RISK: Suspicious domain - flag for review")
        elif risk_score > 0.3:
            recommendations.append("LOW RISK: Monitor domain activity")
        else:
            recommendations.append("SAFE: Domain appears legitimate")

        if is_idn:
            recommendations.append("Consider displaying punycode representation to users")
        if brand_matched:
            recommendations.append("Verify domain authenticity through official channels")
        return tuple(recommendations)
