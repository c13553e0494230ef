"""Naive Bayes text classifier backed by a JSON model file."""

from __future__ import annotations

import json
import logging
import math
import re
from collections import Counter
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from .exceptions import ClassifierLoadError
from .utils.tasks import Outcome

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "categories",
    "docCount",
    "totalDocuments",
    "vocabulary",
    "vocabularySize",
    "wordCount",
    "wordFrequencyCount",
)

FALLBACK_TRAINING: list[tuple[str, str]] = [
    ("spam", "buy now free money click here"),
    ("spam", "urgent action required verify account"),
    ("ham", "hello how are you doing today"),
    ("ham", "thank you for your email"),
]

DEFAULT_CATEGORY = "ham"

_WHITESPACE = re.compile(r"\s+")

Tokenizer = Callable[[Union[str, list]], list[str]]


def whitespace_tokenizer(value: Union[str, list]) -> list[str]:
    """Tokens are produced upstream; the classifier only splits on whitespace."""
    if isinstance(value, str):
        return [t for t in _WHITESPACE.split(value) if t]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


class NaiveBayesClassifier:
    """Multinomial naive Bayes with Laplace smoothing."""

    def __init__(self, tokenizer: Optional[Tokenizer] = None):
        self.tokenizer: Tokenizer = tokenizer or whitespace_tokenizer
        self.categories: list[str] = []
        self.doc_count: dict[str, int] = {}
        self.total_documents = 0
        self.vocabulary: set[str] = set()
        self.word_count: dict[str, int] = {}
        self.word_frequency_count: dict[str, dict[str, int]] = {}
        self.options: dict = {}

    @property
    def vocabulary_size(self) -> int:
        return len(self.vocabulary)

    def _init_category(self, category: str) -> None:
        if category not in self.doc_count:
            self.categories.append(category)
            self.doc_count[category] = 0
            self.word_count[category] = 0
            self.word_frequency_count[category] = {}

    def learn(self, category: str, text: Union[str, list]) -> None:
        self._init_category(category)
        self.doc_count[category] += 1
        self.total_documents += 1

        frequencies = self.word_frequency_count[category]
        for token, count in Counter(self.tokenizer(text)).items():
            self.vocabulary.add(token)
            frequencies[token] = frequencies.get(token, 0) + count
            self.word_count[category] += count

    def _log_likelihoods(self, tokens: list[str]) -> dict[str, float]:
        frequencies = Counter(tokens)
        vocab_size = self.vocabulary_size
        scores: dict[str, float] = {}
        for category in self.categories:
            prior = self.doc_count[category] / self.total_documents
            score = math.log(prior) if prior > 0 else float("-inf")
            denominator = self.word_count[category] + vocab_size
            category_freq = self.word_frequency_count[category]
            for token, count in frequencies.items():
                token_prob = (category_freq.get(token, 0) + 1) / denominator
                score += count * math.log(token_prob)
            scores[category] = score
        return scores

    def categorize(self, text: Union[str, list]) -> tuple[str, float]:
        """Most likely category and its normalized posterior probability."""
        tokens = self.tokenizer(text)
        if not tokens or not self.total_documents:
            return DEFAULT_CATEGORY, 0.5

        scores = self._log_likelihoods(tokens)
        # Ties go to the default category
        best = max(self.categories, key=lambda c: (scores[c], c == DEFAULT_CATEGORY))
        top = scores[best]
        total = sum(math.exp(s - top) for s in scores.values() if s != float("-inf"))
        return best, (1.0 / total) if total else 1.0

    def to_dict(self) -> dict:
        return {
            "categories": {c: True for c in self.categories},
            "docCount": dict(self.doc_count),
            "totalDocuments": self.total_documents,
            "vocabulary": {w: True for w in sorted(self.vocabulary)},
            "vocabularySize": self.vocabulary_size,
            "wordCount": dict(self.word_count),
            "wordFrequencyCount": {c: dict(f) for c, f in self.word_frequency_count.items()},
            "options": dict(self.options),
        }

    @classmethod
    def from_dict(cls, data: dict, tokenizer: Optional[Tokenizer] = None) -> "NaiveBayesClassifier":
        if not isinstance(data, dict):
            raise ClassifierLoadError(f"Classifier model must be an object, got {type(data).__name__}")
        missing = [key for key in REQUIRED_KEYS if key not in data]
        if missing:
            raise ClassifierLoadError(f"Classifier model is missing keys: {', '.join(missing)}")

        classifier = cls(tokenizer)
        try:
            categories = data["categories"]
            classifier.categories = list(categories.keys() if isinstance(categories, dict) else categories)
            classifier.doc_count = {c: int(data["docCount"].get(c, 0)) for c in classifier.categories}
            classifier.total_documents = int(data["totalDocuments"])
            classifier.vocabulary = set(data["vocabulary"])
            classifier.word_count = {c: int(data["wordCount"].get(c, 0)) for c in classifier.categories}
            classifier.word_frequency_count = {
                c: {w: int(n) for w, n in (data["wordFrequencyCount"].get(c) or {}).items()}
                for c in classifier.categories
            }
        except (AttributeError, TypeError, ValueError) as exc:
            raise ClassifierLoadError(f"Classifier model is malformed: {exc}") from exc
        classifier.options = dict(data.get("options") or {})
        return classifier

    @classmethod
    def load(cls, path: Path, tokenizer: Optional[Tokenizer] = None) -> "NaiveBayesClassifier":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ClassifierLoadError(f"Cannot read classifier model {path}: {exc}") from exc
        return cls.from_dict(data, tokenizer)

    @classmethod
    def fallback(cls, tokenizer: Optional[Tokenizer] = None) -> "NaiveBayesClassifier":
        classifier = cls(tokenizer)
        for category, text in FALLBACK_TRAINING:
            classifier.learn(category, text)
        return classifier


def classifier_search_paths(explicit: Optional[Path] = None) -> list[Path]:
    paths = []
    if explicit is not None:
        paths.append(Path(explicit))
    paths.extend(
        [
            Path("./classifier.json"),
            Path(__file__).resolve().parent / "classifier.json",
            Path.home() / ".spamscanner" / "classifier.json",
        ]
    )
    return paths


def load_classifier(
    explicit: Optional[Path] = None,
    tokenizer: Optional[Tokenizer] = None,
    search_paths: Optional[Iterable[Path]] = None,
) -> Outcome[NaiveBayesClassifier]:
    """Load the first readable model on the search path, or train the fallback model."""
    paths = list(search_paths) if search_paths is not None else classifier_search_paths(explicit)
    for index, path in enumerate(paths):
        if not path.exists():
            continue
        try:
            classifier = NaiveBayesClassifier.load(path, tokenizer)
        except ClassifierLoadError as exc:
            logger.warning("Skipping classifier model %s: %s", path, exc)
            continue
        logger.debug("Loaded classifier model from %s", path)
        return Outcome.primary(classifier) if index == 0 else Outcome.fallback(classifier, f"loaded {path}")

    logger.debug(
        "No classifier.json found in %s; using the built-in fallback model",
        ", ".join(str(p) for p in paths),
    )
    return Outcome.default(NaiveBayesClassifier.fallback(tokenizer), "no model file found")
