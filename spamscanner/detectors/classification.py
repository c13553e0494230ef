"""Statistical classification of message tokens."""

from __future__ import annotations

import logging

from ..classifier import DEFAULT_CATEGORY, NaiveBayesClassifier
from .base import ScanContext
from .models import ClassificationFinding, Finding

logger = logging.getLogger(__name__)


class ClassificationDetector:
    name = "classification"

    def __init__(self, classifier: NaiveBayesClassifier):
        self.classifier = classifier

    async def detect(self, context: ScanContext) -> list[Finding]:
        text = " ".join(context.tokens)
        category, probability = self.classifier.categorize(text)
        category = category or DEFAULT_CATEGORY
        return [
            ClassificationFinding(
                description=f"Classified as {category}",
                category_name=category,
                probability=probability,
            )
        ]
