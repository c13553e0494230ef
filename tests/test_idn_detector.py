"""Tests for IDN homograph risk scoring."""

import pytest

from spamscanner.config import ScannerConfig
from spamscanner.idn import HomographDetector, IDNContext, decode_punycode

APPLE_TWIN = "xn--80ak6aa92e.com"


@pytest.fixture
def detector():
    return HomographDetector(brands=["apple", "paypal", "google"])


def test_punycode_lookalike_of_brand_is_high_risk(detector):
    report = detector.detect(APPLE_TWIN)
    assert report.is_internationalized
    assert report.risk_score > 0.6
    assert any(f.startswith("Confusable character") for f in report.risk_factors)
    assert any("apple" in f for f in report.risk_factors if f.startswith("High similarity"))
    assert report.recommendations[0].startswith("HIGH RISK")


def test_ascii_domain_scores_lower_than_its_homograph_twin(detector):
    ascii_report = detector.detect("apple.com")
    twin_report = detector.detect(APPLE_TWIN)
    assert ascii_report.risk_score < twin_report.risk_score
    assert not ascii_report.is_internationalized


def test_unicode_form_is_scored_like_punycode(detector):
    unicode_domain = decode_punycode(APPLE_TWIN)
    report = detector.detect(unicode_domain)
    assert report.is_internationalized
    assert report.risk_score > 0.6
    assert "Contains non-ASCII characters" in report.risk_factors


def test_mixed_scripts_are_flagged(detector):
    # Latin "p" + Cyrillic "а" + Latin "ypal"
    report = detector.detect("pаypal.com")
    assert any(f.startswith("Mixed scripts detected") for f in report.risk_factors)
    assert "Suspicious Latin/Cyrillic or Latin/Greek mixing" in report.risk_factors
    assert report.risk_score == 1.0


def test_score_is_clamped(detector):
    context = IDNContext(
        email_content="URGENT: verify your account now, click here, limited time",
        display_text="apple.com",
        sender_reputation=0.1,
    )
    report = detector.detect(APPLE_TWIN, context)
    assert 0.0 <= report.risk_score <= 1.0
    assert report.confidence == report.risk_score


def test_context_only_increases_risk():
    detector = HomographDetector(brands=[])
    base = detector.detect("example.org").risk_score
    low_reputation = detector.detect("example.org", IDNContext(sender_reputation=0.2)).risk_score
    urgent = detector.detect(
        "example.org",
        IDNContext(sender_reputation=0.2, email_content="urgent: your account was suspended"),
    ).risk_score
    assert base == 0.0
    assert low_reputation == pytest.approx(0.2)
    assert urgent == pytest.approx(0.4)


def test_display_text_mismatch():
    detector = HomographDetector(brands=[])
    same = detector.detect("example.org", IDNContext(display_text="https://www.example.org/login"))
    different = detector.detect("evil.example.net", IDNContext(display_text="example.org"))
    assert same.risk_score == 0.0
    assert "Display text differs from actual domain" in different.risk_factors


def test_whitelisted_domain_is_safe(detector):
    report = detector.detect("xn--fiqs8s")
    assert report.risk_score == 0.0
    assert report.confidence == 1.0
    assert report.recommendations == ("Domain is whitelisted as legitimate",)


def test_whitelist_can_be_disabled():
    detector = HomographDetector(enable_whitelist=False)
    assert detector.detect("xn--fiqs8s").risk_score > 0.0


def test_invalid_punycode_penalty_depends_on_strict_mode():
    lenient = HomographDetector(brands=[]).detect("xn--ab_c.com")
    strict = HomographDetector(brands=[], strict_mode=True).detect("xn--ab_c.com")
    assert "Invalid punycode encoding" in lenient.risk_factors
    assert strict.risk_score > lenient.risk_score


def test_results_are_cached_per_context(detector):
    detector.detect("example.com")
    detector.detect("example.com")
    assert detector.cache_size == 1
    detector.detect("example.com", IDNContext(sender_reputation=0.1))
    assert detector.cache_size == 2
    detector.clear_cache()
    assert detector.cache_size == 0


def test_caching_can_be_disabled():
    detector = HomographDetector(enable_caching=False)
    detector.detect("example.com")
    assert detector.cache_size == 0


def test_report_serialization(detector):
    data = detector.detect(APPLE_TWIN).to_dict()
    assert set(data) == {"domain", "isIDN", "riskScore", "riskFactors", "recommendations", "confidence"}
    assert data["isIDN"] is True


def test_normalize_domain_folds_confusables(detector):
    assert detector.normalize_domain(APPLE_TWIN) == "apple"
    assert detector.normalize_domain("Apple.com") == "apple"


def test_detect_scripts():
    assert HomographDetector.detect_scripts("abc") == ["Latin"]
    assert HomographDetector.detect_scripts("aа") == ["Latin", "Cyrillic"]
    assert HomographDetector.detect_scripts("123") == []


def test_from_config_uses_heuristics(tmp_path):
    config = ScannerConfig(brands=["acme"], strict_idn_detection=True, config_dir=tmp_path)
    detector = HomographDetector.from_config(config)
    assert detector.brands == ["acme"]
    assert detector.strict_mode


@pytest.mark.parametrize("suffix", ["а", "ο", "ӏ"])
def test_appending_a_confusable_never_lowers_risk(suffix):
    detector = HomographDetector(brands=["paypal"], enable_caching=False)
    base = detector.detect("paypal.com").risk_score
    extended = detector.detect(f"paypal{suffix}.com").risk_score
    assert extended >= base
