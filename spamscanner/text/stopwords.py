"""Per-locale stop-word tables.

Each table is the union of two sources: the `stop-words` package and the
stopwords-iso collection. Both ship their word lists inside the wheel.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Mapping, Optional

import stopwordsiso
from stop_words import StopWordError, get_stop_words

logger = logging.getLogger(__name__)

FALLBACK_LOCALE = "en"

StopWordSource = Callable[[str], Iterable[str]]


def stop_words_package_source(locale: str) -> list[str]:
    try:
        return get_stop_words(locale)
    except StopWordError:
        return []


def stopwords_iso_source(locale: str) -> list[str]:
    if not stopwordsiso.has_lang(locale):
        return []
    return sorted(stopwordsiso.stopwords(locale))


DEFAULT_SOURCES: tuple[StopWordSource, ...] = (stop_words_package_source, stopwords_iso_source)


class StopWords:
    """Lazily built, immutable stop-word sets keyed by locale."""

    def __init__(
        self,
        sources: Iterable[StopWordSource] = DEFAULT_SOURCES,
        *,
        tables: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        self._sources = tuple(sources)
        self._tables: dict[str, frozenset[str]] = {}
        self._lock = threading.Lock()
        for locale, words in (tables or {}).items():
            self._tables[locale] = frozenset(w.lower() for w in words)

    def _build(self, locale: str) -> frozenset[str]:
        words: set[str] = set()
        for source in self._sources:
            words.update(w.strip().lower() for w in source(locale) if w and w.strip())
        logger.debug("Built stop-word table for %s (%d words)", locale, len(words))
        return frozenset(words)

    def table(self, locale: str) -> frozenset[str]:
        """Stop words for exactly `locale` (possibly empty)."""
        with self._lock:
            cached = self._tables.get(locale)
            if cached is None:
                cached = self._build(locale)
                self._tables[locale] = cached
            return cached

    def for_locale(self, locale: str) -> frozenset[str]:
        """Stop words for `locale`, falling back to English when it has none."""
        words = self.table(locale)
        if not words and locale != FALLBACK_LOCALE:
            return self.table(FALLBACK_LOCALE)
        return words

    def remove(self, tokens: Iterable[str], locale: str) -> list[str]:
        words = self.for_locale(locale)
        return [token for token in tokens if token not in words]


_default: Optional[StopWords] = None
_default_lock = threading.Lock()


def default_stopwords() -> StopWords:
    """Process-wide stop-word tables."""
    global _default
    with _default_lock:
        if _default is None:
            _default = StopWords()
        return _default
