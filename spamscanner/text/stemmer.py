"""Snowball stemming keyed by locale.

Standard mode stems a token list in one call and falls back as a whole;
advanced mode stems word by word and keeps the original form of any word the
algorithm rejects.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

import snowballstemmer

from ..config import DEFAULT_ADVANCED_STEMMING_EXCLUDED
from ..exceptions import UnsupportedLocaleError
from ..utils.tasks import Outcome

logger = logging.getLogger(__name__)

LOCALE_ALGORITHMS: dict[str, str] = {
    "ar": "arabic",
    "hy": "armenian",
    "eu": "basque",
    "ca": "catalan",
    "da": "danish",
    "nl": "dutch",
    "en": "english",
    "et": "estonian",
    "fi": "finnish",
    "fr": "french",
    "de": "german",
    "el": "greek",
    "hi": "hindi",
    "hu": "hungarian",
    "id": "indonesian",
    "ga": "irish",
    "it": "italian",
    "lt": "lithuanian",
    "ne": "nepali",
    "no": "norwegian",
    "pt": "portuguese",
    "ro": "romanian",
    "ru": "russian",
    "sr": "serbian",
    "es": "spanish",
    "sv": "swedish",
    "ta": "tamil",
    "tr": "turkish",
    "yi": "yiddish",
}


def _build_registry() -> dict[str, str]:
    available = set(snowballstemmer.algorithms())
    registry = {code: name for code, name in LOCALE_ALGORITHMS.items() if name in available}
    # Full algorithm names ("english", "porter") are accepted as locales too.
    registry.update({name: name for name in available})
    return registry


class Stemmer:
    """Locale -> Snowball algorithm registry with standard and advanced modes."""

    def __init__(self, advanced_excluded: Optional[Iterable[str]] = None):
        self.registry = _build_registry()
        excluded = DEFAULT_ADVANCED_STEMMING_EXCLUDED if advanced_excluded is None else advanced_excluded
        self.advanced_excluded = frozenset(excluded)
        self._stemmers: dict[str, object] = {}
        self._lock = threading.Lock()

    def supported_languages(self) -> list[str]:
        """ISO codes with a stemming algorithm."""
        return sorted(code for code in self.registry if len(code) <= 3)

    def is_supported(self, locale: str) -> bool:
        return (locale or "").lower() in self.registry

    def is_advanced_supported(self, locale: str) -> bool:
        locale = (locale or "").lower()
        return self.is_supported(locale) and locale not in self.advanced_excluded

    def _stemmer_for(self, locale: str):
        # Snowball stemmer objects are not thread-safe; one per locale, used under the lock.
        algorithm = self.registry[locale]
        stemmer = self._stemmers.get(algorithm)
        if stemmer is None:
            stemmer = snowballstemmer.stemmer(algorithm)
            self._stemmers[algorithm] = stemmer
        return stemmer

    def stem(
        self,
        tokens: list[str],
        locale: str,
        *,
        fallback_to_original: bool = True,
        advanced: bool = False,
        strict: bool = False,
    ) -> Outcome[list[str]]:
        """Stem `tokens` for `locale`.

        Unsupported locales pass through unchanged, or raise
        UnsupportedLocaleError when `strict` is set. A stemming failure returns
        the input tokens when `fallback_to_original` is set, otherwise [].
        """
        tokens = list(tokens)
        locale = (locale or "").lower()
        if not self.is_supported(locale):
            if strict:
                raise UnsupportedLocaleError(locale)
            logger.debug("No stemming algorithm for locale %r; tokens left unchanged", locale)
            return Outcome.default(tokens, f"unsupported locale {locale!r}")
        if not tokens:
            return Outcome.primary([])

        try:
            with self._lock:
                stemmer = self._stemmer_for(locale)
                if advanced:
                    return Outcome.primary([self._stem_word(stemmer, t, fallback_to_original) for t in tokens])
                return Outcome.primary(stemmer.stemWords(tokens))
        except Exception as exc:
            logger.debug("Stemming failed for locale %r: %s", locale, exc)
            return Outcome.fallback(tokens if fallback_to_original else [], exc)

    @staticmethod
    def _stem_word(stemmer, word: str, fallback_to_original: bool) -> str:
        try:
            stemmed = stemmer.stemWord(word)
        except Exception as exc:
            logger.debug("Stemming %r failed: %s", word, exc)
            stemmed = ""
        if not stemmed and fallback_to_original:
            return word
        return stemmed


_default: Optional[Stemmer] = None
_default_lock = threading.Lock()


def default_stemmer() -> Stemmer:
    """Process-wide stemmer registry."""
    global _default
    with _default_lock:
        if _default is None:
            _default = Stemmer()
        return _default
