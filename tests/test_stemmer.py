"""Tests for the locale-keyed stemmer."""

import pytest

from spamscanner.exceptions import UnsupportedLocaleError
from spamscanner.text.stemmer import Stemmer
from spamscanner.utils.tasks import OutcomePath


@pytest.fixture
def stemmer():
    return Stemmer()


def test_supported_languages_include_common_locales(stemmer):
    languages = stemmer.supported_languages()
    for code in ("en", "de", "fr", "es", "ru"):
        assert code in languages
    assert all(len(code) <= 3 for code in languages)


def test_standard_stemming(stemmer):
    outcome = stemmer.stem(["running", "jumps"], "en")
    assert outcome.path is OutcomePath.PRIMARY
    assert outcome.value == ["run", "jump"]


def test_unsupported_locale_passes_tokens_through(stemmer):
    outcome = stemmer.stem(["hello"], "xx")
    assert outcome.path is OutcomePath.DEFAULT
    assert outcome.value == ["hello"]


def test_unsupported_locale_strict_raises(stemmer):
    with pytest.raises(UnsupportedLocaleError) as excinfo:
        stemmer.stem(["hello"], "xx", strict=True)
    assert excinfo.value.locale == "xx"


def test_empty_tokens(stemmer):
    outcome = stemmer.stem([], "en")
    assert outcome.value == []


def test_advanced_exclusions_are_configurable():
    stemmer = Stemmer(advanced_excluded={"de"})
    assert not stemmer.is_advanced_supported("de")
    assert stemmer.is_advanced_supported("en")
    assert not stemmer.is_advanced_supported("xx")


def test_default_exclusions_cover_turkish(stemmer):
    assert stemmer.is_supported("tr")
    assert not stemmer.is_advanced_supported("tr")


def test_advanced_mode_keeps_original_when_stem_is_empty(stemmer):
    class _EmptyStemmer:
        def stemWord(self, word):
            return ""

    assert Stemmer._stem_word(_EmptyStemmer(), "word", True) == "word"
    assert Stemmer._stem_word(_EmptyStemmer(), "word", False) == ""


def test_failure_falls_back_to_original(stemmer, monkeypatch):
    def broken(locale):
        raise RuntimeError("boom")

    monkeypatch.setattr(stemmer, "_stemmer_for", broken)
    outcome = stemmer.stem(["running"], "en")
    assert outcome.path is OutcomePath.FALLBACK
    assert outcome.value == ["running"]

    outcome = stemmer.stem(["running"], "en", fallback_to_original=False)
    assert outcome.value == []
