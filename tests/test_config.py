"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from spamscanner import config as config_module
from spamscanner.config import (
    DEFAULT_BRANDS,
    ScannerConfig,
    load_config,
    validate_config,
)


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Isolated environment: no .env file and an empty config directory."""
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    return monkeypatch


def test_defaults(env):
    config = load_config()
    assert config.enable_macro_detection
    assert config.enable_malware_url_check
    assert not config.enable_performance_metrics
    assert config.supported_languages == ["en"]
    assert config.file_path_detection == "strict"
    assert config.sender_reputation == 0.5
    assert config.brands == DEFAULT_BRANDS
    assert validate_config(config) == []


def test_environment_overrides(env):
    env.setenv("ENABLE_MACRO_DETECTION", "false")
    env.setenv("ENABLE_PERFORMANCE_METRICS", "TRUE")
    env.setenv("SUPPORTED_LANGUAGES", "en, DE ,fr")
    env.setenv("FILE_PATH_DETECTION", "Benign")
    env.setenv("SENDER_REPUTATION", "")
    env.setenv("CLAMD_SOCKET", "")
    env.setenv("CLAMD_HOST", "clamav")
    env.setenv("CLASSIFIER_PATH", "/models/classifier.json")

    config = load_config()
    assert not config.enable_macro_detection
    assert config.enable_performance_metrics
    assert config.supported_languages == ["en", "de", "fr"]
    assert config.file_path_detection == "benign"
    assert config.sender_reputation is None
    assert config.clamd_socket is None
    assert config.clamd_host == "clamav"
    assert config.classifier_path == Path("/models/classifier.json")


def test_heuristics_file_overrides_tables(env, tmp_path):
    (tmp_path / "heuristics.yaml").write_text(
        """
domain:
  brands: [Acme, Globex]
  urgency_patterns: ["wire.*transfer", "(unclosed"]
attachments:
  executables: [".EXE", "js"]
text:
  advanced_stemming_excluded: [de]
patterns:
  allowlisted_paths: ["^/opt/app/"]
""",
        encoding="utf-8",
    )

    config = load_config()
    assert config.brands == ["acme", "globex"]
    assert config.urgency_patterns == ["wire.*transfer"]
    assert config.executables == {"exe", "js"}
    assert config.advanced_stemming_excluded == {"de"}
    assert [p.pattern for p in config.allowlisted_path_patterns] == ["^/opt/app/"]


def test_malformed_heuristics_file_is_ignored(env, tmp_path):
    (tmp_path / "heuristics.yaml").write_text("- not\n- a mapping\n", encoding="utf-8")
    assert load_config().brands == DEFAULT_BRANDS


def test_list_files_extend_brands_and_whitelist(tmp_path):
    (tmp_path / "brands.txt").write_text("# extra brands\nContoso\n\napple\n", encoding="utf-8")
    (tmp_path / "idn_whitelist.txt").write_text("xn--mnchen-3ya.de\n", encoding="utf-8")

    config = ScannerConfig(config_dir=tmp_path)
    assert config.brands[-1] == "contoso"
    assert config.brands.count("apple") == 1
    assert "xn--mnchen-3ya.de" in config.idn_whitelist


def test_validate_config_reports_errors(tmp_path):
    config = ScannerConfig(
        file_path_detection="sometimes",
        timeout=0,
        dns_timeout=-1,
        sender_reputation=1.5,
        config_dir=tmp_path,
    )
    errors = validate_config(config)
    assert len(errors) == 4
    assert errors[0].startswith("FILE_PATH_DETECTION must be one of off, benign, strict")


def test_invalid_allowlisted_pattern_is_skipped(tmp_path):
    config = ScannerConfig(allowlisted_paths=["(", r"^/srv/"], config_dir=tmp_path)
    assert [p.pattern for p in config.allowlisted_path_patterns] == [r"^/srv/"]
