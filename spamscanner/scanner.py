"""Scan orchestration: parse, tokenize, run detectors concurrently, decide."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Sequence, Union

from .classifier import NaiveBayesClassifier, load_classifier, whitespace_tokenizer
from .config import ScannerConfig
from .detectors import (
    ArbitraryDetector,
    ClassificationDetector,
    ClassificationFinding,
    Detector,
    ExecutablesDetector,
    Finding,
    IdnHomographAttackDetector,
    MacroDetector,
    PatternDetector,
    PhishingDetector,
    ScanContext,
    VirusDetector,
)
from .exceptions import MalformedInputError, UnsupportedLocaleError
from .idn.detector import HomographDetector
from .mail import Message, parse_message
from .metrics import ScanTimings, Stopwatch, metrics
from .reputation import DNSBlocklistClient
from .text.language import DEFAULT_LOCALE, detect_language
from .text.normalizer import Normalizer, strip_markup
from .text.tokenizer import Tokenizer, stem_text
from .utils.urls import extract_urls
from .verdict import DecisionEngine, ScanVerdict
from .virus import ClamdClient

logger = logging.getLogger(__name__)

Source = Union[str, bytes, bytearray, os.PathLike]

# Strings longer than this are never treated as file paths
_MAX_PATH_LENGTH = 4096


class SpamScanner:
    """Scans messages and returns a `ScanVerdict`.

    Collaborators default to the ones described by `config`; any of them can
    be passed in explicitly (tests use this to inject fakes).
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        *,
        classifier: Optional[NaiveBayesClassifier] = None,
        tokenizer: Optional[Tokenizer] = None,
        normalizer: Optional[Normalizer] = None,
        analyzer: Optional[HomographDetector] = None,
        blocklist: Optional[DNSBlocklistClient] = None,
        virus_client: Optional[ClamdClient] = None,
        detectors: Optional[Sequence[Detector]] = None,
    ):
        self.config = config or ScannerConfig()
        cfg = self.config

        self.normalizer = normalizer or Normalizer.from_config(cfg)
        self.tokenizer = tokenizer or Tokenizer.from_config(cfg)

        if classifier is None:
            outcome = load_classifier(cfg.classifier_path)
            classifier = outcome.value
            if not outcome.is_primary:
                logger.debug("Classifier loaded via %s path: %s", outcome.path.value, outcome.reason)
        # Tokens come from our own pipeline; the classifier only splits on whitespace.
        classifier.tokenizer = whitespace_tokenizer
        self.classifier = classifier

        self.analyzer = analyzer or HomographDetector.from_config(cfg)

        if blocklist is None and cfg.enable_malware_url_check:
            blocklist = DNSBlocklistClient.from_config(cfg)
        self.blocklist = blocklist

        if virus_client is None and (cfg.clamd_host or cfg.clamd_socket):
            virus_client = ClamdClient.from_config(cfg)
        self.virus_client = virus_client

        self.decision_engine = DecisionEngine.from_config(cfg)
        self.detectors: list[Detector] = list(detectors) if detectors is not None else self._build_detectors()

    def _build_detectors(self) -> list[Detector]:
        cfg = self.config
        return [
            ClassificationDetector(self.classifier),
            PhishingDetector(
                self.analyzer,
                self.blocklist,
                dns_timeout=cfg.dns_timeout,
                sender_reputation=cfg.sender_reputation,
            ),
            ExecutablesDetector(cfg.executables),
            MacroDetector(enabled=cfg.enable_macro_detection),
            ArbitraryDetector(),
            VirusDetector(self.virus_client, timeout=cfg.timeout),
            PatternDetector(cfg.file_path_detection, cfg.allowlisted_path_patterns),
            IdnHomographAttackDetector(self.analyzer, sender_reputation=cfg.sender_reputation),
        ]

    # Input handling

    @staticmethod
    def _is_file_path(value: str) -> bool:
        if not value or len(value) > _MAX_PATH_LENGTH or "\n" in value or "\0" in value:
            return False
        try:
            return Path(value).is_file()
        except (OSError, ValueError):
            return False

    def resolve_source(self, source: Source) -> tuple[Union[str, bytes], Optional[str]]:
        """Return (raw message, raw text for link extraction).

        The second item is only set for literal string sources. Raises
        MalformedInputError for anything that is not text, bytes or a path.
        """
        if isinstance(source, (bytes, bytearray)):
            return bytes(source), None
        if isinstance(source, os.PathLike):
            try:
                return Path(source).read_bytes(), None
            except OSError as exc:
                raise MalformedInputError(source) from exc
        if isinstance(source, str):
            if self._is_file_path(source):
                return Path(source).read_bytes(), None
            return source, source
        raise MalformedInputError(source)

    # Text pipeline

    def get_tokens(self, message: Message) -> list[str]:
        """Tokens of the message text, visible html text and subject."""
        parts = [
            self.normalizer.preprocess(message.text),
            self.normalizer.preprocess(strip_markup(message.html or "")),
            self.normalizer.preprocess(message.subject),
        ]
        content = " ".join(part for part in parts if part)
        if not content:
            return []

        locale = DEFAULT_LOCALE
        if self.config.enable_mixed_language_detection:
            detected = detect_language(content).value
            supported = self.config.supported_languages
            if not supported or detected in supported:
                locale = detected

        try:
            return self.tokenizer.tokenize(content, locale)
        except UnsupportedLocaleError as exc:
            logger.warning("Tokenization skipped: %s", exc)
            return []

    def stem_text(self, text: str, locale: str = "en", **options) -> list[str]:
        """Tokenize `text` and stem it for `locale`."""
        return stem_text(text, locale, tokenizer=self.tokenizer, **options)

    def extract_links(self, message: Message, source: Optional[str] = None) -> list[str]:
        chunks = [message.text, message.html, message.header_text, source]
        return extract_urls("\n".join(chunk for chunk in chunks if chunk))

    # Scanning

    async def scan(self, source: Source) -> ScanVerdict:
        """Scan raw message text, bytes, or a path to a message file."""
        raw, source_text = self.resolve_source(source)
        try:
            message = parse_message(raw)
        except Exception as exc:
            logger.debug("Mail parsing failed, scanning raw text: %s", exc)
            text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            message = Message(text=text)
        return await self.scan_message(message, source=source_text)

    async def _run_detector(self, detector: Detector, context: ScanContext, timings: Optional[ScanTimings]) -> list[Finding]:
        name = getattr(detector, "name", type(detector).__name__)
        stopwatch = Stopwatch()
        try:
            return list(await detector.detect(context))
        except Exception as exc:
            logger.debug("Detector %s failed: %s", name, exc)
            return []
        finally:
            if timings is not None:
                timings.detector_times[name] = stopwatch.elapsed_ms

    async def scan_message(self, message: Message, source: Optional[str] = None) -> ScanVerdict:
        """Scan an already parsed message."""
        stopwatch = Stopwatch()
        timings = ScanTimings() if self.config.enable_performance_metrics else None

        tokens = self.get_tokens(message)
        if timings is not None:
            timings.tokenize_time = stopwatch.elapsed_ms

        context = ScanContext(message=message, tokens=tuple(tokens), source=source)
        results = await asyncio.gather(
            *(self._run_detector(detector, context, timings) for detector in self.detectors)
        )

        classification: Optional[ClassificationFinding] = None
        findings: list[Finding] = []
        for detector_findings in results:
            for finding in detector_findings:
                if isinstance(finding, ClassificationFinding):
                    classification = classification or finding
                else:
                    findings.append(finding)
        if classification is None:
            classification = ClassificationFinding("Classified as ham")

        is_spam, explanation = self.decision_engine.decide(classification, findings)
        links = self.extract_links(message, source)

        duration = stopwatch.elapsed_ms
        if timings is not None:
            timings.total_time = duration
        metrics.record_scan(duration, is_spam, {type(f).category for f in findings})
        logger.info("Scan complete: %s (%.1f ms, %d findings)", explanation, duration, len(findings))

        return ScanVerdict(
            is_spam=is_spam,
            message=explanation,
            classification=classification,
            findings=tuple(findings),
            links=tuple(links),
            tokens=tuple(tokens),
            mail=message,
            metrics=timings,
        )
