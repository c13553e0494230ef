"""Tests for URL extraction and normalization."""

import pytest

from spamscanner.utils.urls import (
    canonicalize_domain,
    extract_urls,
    find_urls,
    normalize_url,
    url_hostname,
)


def test_canonicalize_domain_strips_www_and_path():
    assert canonicalize_domain("https://WWW.Example.com:8443/login?x=1") == "example.com"
    assert canonicalize_domain("example.com.") == "example.com"
    assert canonicalize_domain("") == ""


def test_normalize_url_lowercases_and_drops_defaults():
    assert normalize_url("HTTPS://Example.COM:443/") == "https://example.com"
    assert normalize_url("http://user:pw@example.com:8080/a//b/") == "http://example.com:8080/a/b"


def test_normalize_url_adds_scheme():
    assert normalize_url("example.com/path") == "http://example.com/path"
    assert normalize_url("//cdn.example.com/x.js") == "http://cdn.example.com/x.js"


def test_normalize_url_sorts_query_and_drops_tracking():
    url = "https://example.com/p?utm_source=mail&b=2&a=1&utm_campaign=x"
    assert normalize_url(url) == "https://example.com/p?a=1&b=2"


def test_normalize_url_hash_handling():
    assert normalize_url("https://example.com/p#top") == "https://example.com/p#top"
    assert normalize_url("https://example.com/p#top", strip_hash=True) == "https://example.com/p"


def test_normalize_url_encodes_unicode_host():
    normalized = normalize_url("http://bücher.de/")
    assert url_hostname(normalized) == "xn--bcher-kva.de"


def test_normalize_url_rejects_missing_host():
    with pytest.raises(ValueError):
        normalize_url("")
    with pytest.raises(ValueError):
        normalize_url("http://")


def test_find_urls_requires_public_suffix_without_scheme():
    text = "see example.com and readme.txtx and https://10.0.0.1/admin and 10.0.0.2"
    found = find_urls(text)
    assert "example.com" in found
    assert "https://10.0.0.1/admin" in found
    assert "10.0.0.2" not in found
    assert not any("readme" in url for url in found)


def test_find_urls_trims_trailing_punctuation():
    assert find_urls("Go to https://example.com/offer).") == ["https://example.com/offer"]


def test_extract_urls_deduplicates_in_order():
    text = "https://b.example.com/ then HTTPS://B.example.com and http://a.example.org"
    assert extract_urls(text) == ["https://b.example.com", "http://a.example.org"]


def test_extract_urls_empty_text():
    assert extract_urls("") == []
    assert extract_urls("   ") == []


def test_email_addresses_are_not_links():
    assert find_urls("write to alice@example.com today") == []
    assert find_urls("ftp://user@files.example.com/pub") == ["ftp://user@files.example.com/pub"]


def test_curly_quotes_are_not_part_of_the_host():
    assert find_urls("Visit “https://example.com” today") == ["https://example.com"]
    assert find_urls("Visit ‘example.com/offer’ today") == ["example.com/offer"]
    assert extract_urls("“https://example.com” or https://example.com") == ["https://example.com"]


def test_cjk_punctuation_ends_a_url():
    assert find_urls("请访问 example.com。谢谢") == ["example.com"]
    assert find_urls("链接：https://example.com/path，然后") == ["https://example.com/path"]
    assert find_urls("見て「https://example.com/a」") == ["https://example.com/a"]


def test_guillemets_and_ellipsis_are_trimmed():
    assert find_urls("«https://example.fr/page»") == ["https://example.fr/page"]
    assert find_urls("see https://example.com/more…") == ["https://example.com/more"]


def test_unicode_hosts_are_still_found():
    assert find_urls("log in at https://аррӏе.com/login now") == ["https://аррӏе.com/login"]
    assert url_hostname(extract_urls("http://bücher.de/")[0]) == "xn--bcher-kva.de"
