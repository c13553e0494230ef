"""Tests for the naive Bayes classifier and model loading."""

import json

import pytest

from spamscanner.classifier import (
    NaiveBayesClassifier,
    load_classifier,
    whitespace_tokenizer,
)
from spamscanner.exceptions import ClassifierLoadError
from spamscanner.utils.tasks import OutcomePath


def _trained() -> NaiveBayesClassifier:
    classifier = NaiveBayesClassifier()
    classifier.learn("spam", "cheap pills buy now")
    classifier.learn("spam", "win money now")
    classifier.learn("ham", "meeting agenda attached")
    classifier.learn("ham", "lunch tomorrow at noon")
    return classifier


def test_whitespace_tokenizer():
    assert whitespace_tokenizer("a  b\nc") == ["a", "b", "c"]
    assert whitespace_tokenizer(["a", "b"]) == ["a", "b"]
    assert whitespace_tokenizer(None) == []


def test_categorize_picks_most_likely_category():
    classifier = _trained()
    category, probability = classifier.categorize("buy cheap pills")
    assert category == "spam"
    assert 0.5 < probability <= 1.0

    category, _ = classifier.categorize("agenda for the meeting")
    assert category == "ham"


def test_empty_input_is_ham():
    assert _trained().categorize("") == ("ham", 0.5)
    assert NaiveBayesClassifier().categorize("anything") == ("ham", 0.5)


def test_unknown_tokens_tie_to_ham():
    classifier = NaiveBayesClassifier()
    classifier.learn("spam", "alpha beta")
    classifier.learn("ham", "gamma delta")
    category, probability = classifier.categorize("zeta")
    assert category == "ham"
    assert probability == pytest.approx(0.5)


def test_round_trip_through_dict():
    classifier = _trained()
    restored = NaiveBayesClassifier.from_dict(json.loads(json.dumps(classifier.to_dict())))
    assert restored.categories == classifier.categories
    assert restored.categorize("win money") == classifier.categorize("win money")


def test_from_dict_rejects_missing_keys():
    with pytest.raises(ClassifierLoadError, match="missing keys"):
        NaiveBayesClassifier.from_dict({"categories": {}})
    with pytest.raises(ClassifierLoadError):
        NaiveBayesClassifier.from_dict(["not", "a", "dict"])


def test_load_classifier_prefers_explicit_path(tmp_path):
    path = tmp_path / "classifier.json"
    path.write_text(json.dumps(_trained().to_dict()), encoding="utf-8")
    outcome = load_classifier(search_paths=[path])
    assert outcome.path is OutcomePath.PRIMARY
    assert outcome.value.total_documents == 4


def test_load_classifier_skips_broken_models(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    good = tmp_path / "good.json"
    good.write_text(json.dumps(_trained().to_dict()), encoding="utf-8")

    outcome = load_classifier(search_paths=[broken, good])
    assert outcome.path is OutcomePath.FALLBACK
    assert outcome.value.total_documents == 4


def test_load_classifier_uses_builtin_model(tmp_path):
    outcome = load_classifier(search_paths=[tmp_path / "missing.json"])
    assert outcome.path is OutcomePath.DEFAULT
    assert set(outcome.value.categories) == {"spam", "ham"}
