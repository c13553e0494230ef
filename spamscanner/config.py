"""Configuration management for SpamScanner."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


FILE_PATH_MODES = ("off", "benign", "strict")

# Default heuristics for domain risk and attachment checks. These can be
# overridden via config/heuristics.yaml without touching code.
DEFAULT_BRANDS: list[str] = [
    "google",
    "facebook",
    "amazon",
    "apple",
    "microsoft",
    "twitter",
    "instagram",
    "linkedin",
    "youtube",
    "netflix",
    "paypal",
    "ebay",
    "yahoo",
    "adobe",
    "salesforce",
    "oracle",
    "ibm",
    "cisco",
    "intel",
    "nvidia",
    "tesla",
    "citibank",
    "bankofamerica",
    "wellsfargo",
    "chase",
    "americanexpress",
]

DEFAULT_IDN_WHITELIST: set[str] = {
    "xn--fsq.xn--0zwm56d",  # 例.测试
    "xn--fiqs8s",  # 中国
    "xn--fiqz9s",  # 中國
    "xn--j6w193g",  # 香港
    "xn--55qx5d",  # 公司
    "xn--io0a7i",  # 网络
}

DEFAULT_URGENCY_PATTERNS: list[str] = [
    r"urgent",
    r"verify.*account",
    r"suspended",
    r"click.*here",
    r"limited.*time",
    r"act.*now",
    r"confirm.*identity",
]

DEFAULT_EXECUTABLES: set[str] = {
    "apk",
    "app",
    "bat",
    "bin",
    "cmd",
    "com",
    "cpl",
    "deb",
    "dex",
    "dll",
    "dmg",
    "elf",
    "exe",
    "gadget",
    "hta",
    "inf",
    "ins",
    "isp",
    "jar",
    "jse",
    "lnk",
    "msc",
    "msi",
    "msp",
    "mst",
    "pif",
    "ps1",
    "psm1",
    "reg",
    "rpm",
    "scr",
    "sct",
    "sh",
    "shb",
    "sys",
    "vb",
    "vbe",
    "vbs",
    "ws",
    "wsc",
    "wsf",
    "wsh",
}

# Locales whose advanced stemming is disabled. Kept as data: the boundaries of
# this list have not been reviewed and should not be read as authoritative.
DEFAULT_ADVANCED_STEMMING_EXCLUDED: set[str] = {
    "ar",
    "hy",
    "eu",
    "ca",
    "da",
    "fi",
    "el",
    "hi",
    "hu",
    "ga",
    "lt",
    "ne",
    "ro",
    "sr",
    "ta",
    "tr",
    "yi",
}

DEFAULT_ALLOWLISTED_PATHS: list[str] = [
    r"w3\.org/(TR|tr)/xhtml1/DTD/",
]

DEFAULT_DOH_ENDPOINT = "https://1.1.1.3/dns-query"


@dataclass
class ScannerConfig:
    """Scanner configuration loaded from environment and heuristics files."""

    # Feature switches
    enable_macro_detection: bool = True
    enable_malware_url_check: bool = True
    enable_performance_metrics: bool = False
    enable_caching: bool = True
    enable_mixed_language_detection: bool = False
    enable_advanced_pattern_recognition: bool = True

    # Timeouts (seconds) for external calls
    timeout: float = 30.0
    dns_timeout: float = 5.0

    # Text pipeline
    supported_languages: list[str] = field(default_factory=lambda: ["en"])
    enable_advanced_stemming: bool = False
    stemming_fallback_to_original: bool = True
    hash_tokens: bool = False
    replacements_path: Optional[Path] = None

    # Domain risk
    strict_idn_detection: bool = False
    sender_reputation: Optional[float] = 0.5
    doh_endpoint: str = DEFAULT_DOH_ENDPOINT

    # Pattern detection: "off" | "benign" | "strict"
    file_path_detection: str = "strict"

    # Collaborators
    classifier_path: Optional[Path] = None
    clamd_socket: Optional[str] = "/var/run/clamav/clamd.ctl"
    clamd_host: str = ""
    clamd_port: int = 3310

    debug: bool = False

    config_dir: Path = field(default_factory=lambda: Path("./config"))

    # Heuristics (override via config/heuristics.yaml)
    brands: list[str] = field(default_factory=lambda: list(DEFAULT_BRANDS))
    idn_whitelist: Set[str] = field(default_factory=lambda: set(DEFAULT_IDN_WHITELIST))
    urgency_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_URGENCY_PATTERNS))
    executables: Set[str] = field(default_factory=lambda: set(DEFAULT_EXECUTABLES))
    advanced_stemming_excluded: Set[str] = field(
        default_factory=lambda: set(DEFAULT_ADVANCED_STEMMING_EXCLUDED)
    )
    allowlisted_paths: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWLISTED_PATHS))

    def __post_init__(self):
        """Normalize paths and merge list files."""
        self.config_dir = Path(self.config_dir)
        if self.classifier_path is not None:
            self.classifier_path = Path(self.classifier_path)
        if self.replacements_path is not None:
            self.replacements_path = Path(self.replacements_path)

        self._load_lists()

    def _load_lists(self):
        """Extend the IDN whitelist and brand list from config files."""
        whitelist_path = self.config_dir / "idn_whitelist.txt"
        brands_path = self.config_dir / "brands.txt"

        if whitelist_path.exists():
            self.idn_whitelist = set(self.idn_whitelist) | self._load_list_file(whitelist_path)
        if brands_path.exists():
            extra = sorted(self._load_list_file(brands_path) - set(self.brands))
            self.brands = list(self.brands) + extra

    @property
    def allowlisted_path_patterns(self) -> list[re.Pattern]:
        patterns = []
        for raw in self.allowlisted_paths:
            try:
                patterns.append(re.compile(raw))
            except re.error as exc:
                logger.warning("Ignoring invalid allowlisted path pattern %r: %s", raw, exc)
        return patterns

    @staticmethod
    def _load_list_file(path: Path) -> Set[str]:
        """Load a list file, ignoring comments and empty lines."""
        items = set()
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    items.add(line.lower())
        return items


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except Exception as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("heuristics.yaml must contain a mapping, got %s", type(data).__name__)
        return {}

    def _coerce_strings(raw) -> list[str] | None:
        if not isinstance(raw, (list, tuple, set)):
            return None
        items = [str(entry).strip() for entry in raw if str(entry or "").strip()]
        return items or None

    def _coerce_patterns(raw) -> list[str] | None:
        items: list[str] = []
        for entry in _coerce_strings(raw) or []:
            try:
                re.compile(entry)
            except re.error as exc:
                logger.warning("Skipping invalid pattern %r in heuristics.yaml: %s", entry, exc)
                continue
            items.append(entry)
        return items or None

    domain_cfg = data.get("domain", {}) or {}
    text_cfg = data.get("text", {}) or {}
    attachments_cfg = data.get("attachments", {}) or {}
    patterns_cfg = data.get("patterns", {}) or {}

    brands = _coerce_strings(domain_cfg.get("brands"))
    whitelist = _coerce_strings(domain_cfg.get("idn_whitelist"))
    executables = _coerce_strings(attachments_cfg.get("executables"))
    excluded = _coerce_strings(text_cfg.get("advanced_stemming_excluded"))

    return {
        "brands": [b.lower() for b in brands] if brands else None,
        "idn_whitelist": {d.lower() for d in whitelist} if whitelist else None,
        "urgency_patterns": _coerce_patterns(domain_cfg.get("urgency_patterns")),
        "executables": {e.lower().lstrip(".") for e in executables} if executables else None,
        "advanced_stemming_excluded": {e.lower() for e in excluded} if excluded else None,
        "allowlisted_paths": _coerce_patterns(patterns_cfg.get("allowlisted_paths")),
    }


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def load_config() -> ScannerConfig:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)
    overrides = {key: value for key, value in heuristics.items() if value is not None}

    languages_str = os.getenv("SUPPORTED_LANGUAGES", "en")
    supported_languages = [lang.strip().lower() for lang in languages_str.split(",") if lang.strip()]

    reputation_str = os.getenv("SENDER_REPUTATION", "0.5").strip()
    sender_reputation = float(reputation_str) if reputation_str else None

    return ScannerConfig(
        enable_macro_detection=_env_bool("ENABLE_MACRO_DETECTION", True),
        enable_malware_url_check=_env_bool("ENABLE_MALWARE_URL_CHECK", True),
        enable_performance_metrics=_env_bool("ENABLE_PERFORMANCE_METRICS", False),
        enable_caching=_env_bool("ENABLE_CACHING", True),
        enable_mixed_language_detection=_env_bool("ENABLE_MIXED_LANGUAGE_DETECTION", False),
        enable_advanced_pattern_recognition=_env_bool("ENABLE_ADVANCED_PATTERN_RECOGNITION", True),
        timeout=float(os.getenv("SCAN_TIMEOUT", "30")),
        dns_timeout=float(os.getenv("DNS_TIMEOUT", "5")),
        supported_languages=supported_languages or ["en"],
        enable_advanced_stemming=_env_bool("ENABLE_ADVANCED_STEMMING", False),
        stemming_fallback_to_original=_env_bool("STEMMING_FALLBACK_TO_ORIGINAL", True),
        hash_tokens=_env_bool("HASH_TOKENS", False),
        replacements_path=_env_path("REPLACEMENTS_PATH"),
        strict_idn_detection=_env_bool("STRICT_IDN_DETECTION", False),
        sender_reputation=sender_reputation,
        doh_endpoint=os.getenv("DOH_ENDPOINT", DEFAULT_DOH_ENDPOINT),
        file_path_detection=os.getenv("FILE_PATH_DETECTION", "strict").strip().lower(),
        classifier_path=_env_path("CLASSIFIER_PATH"),
        clamd_socket=os.getenv("CLAMD_SOCKET", "/var/run/clamav/clamd.ctl") or None,
        clamd_host=os.getenv("CLAMD_HOST", ""),
        clamd_port=int(os.getenv("CLAMD_PORT", "3310")),
        debug=_env_bool("DEBUG", False),
        config_dir=config_dir,
        **overrides,
    )


def validate_config(config: ScannerConfig) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if config.file_path_detection not in FILE_PATH_MODES:
        errors.append(
            f"FILE_PATH_DETECTION must be one of {', '.join(FILE_PATH_MODES)} "
            f"(got {config.file_path_detection!r})"
        )
    if config.timeout <= 0:
        errors.append("SCAN_TIMEOUT must be positive")
    if config.dns_timeout <= 0:
        errors.append("DNS_TIMEOUT must be positive")
    if config.sender_reputation is not None and not 0.0 <= config.sender_reputation <= 1.0:
        errors.append("SENDER_REPUTATION must be between 0 and 1")

    if config.classifier_path and not config.classifier_path.exists():
        # Classification still runs on the built-in fallback model.
        logger.info("CLASSIFIER_PATH %s not found; the fallback model will be used", config.classifier_path)

    return errors
