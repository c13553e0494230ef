"""Language identification and locale normalization."""

from __future__ import annotations

import logging
import re
from typing import Optional

from langdetect import DetectorFactory, detect_langs
from langdetect.lang_detect_exception import LangDetectException

from ..utils.tasks import Outcome

logger = logging.getLogger(__name__)

# langdetect is probabilistic; a fixed seed keeps results stable across runs.
DetectorFactory.seed = 0

DEFAULT_LOCALE = "en"

LOCALE_ALIASES: dict[str, str] = {
    "nb": "no",
    "nn": "no",
    "zh-cn": "zh",
    "zh-tw": "zh",
    "iw": "he",
    "in": "id",
    "jw": "jv",
    "tl": "fil",
}

_NON_LINGUISTIC = re.compile(r"^[\d\s\W_]+$")


def normalize_locale(locale: Optional[str]) -> str:
    """Lower-case a locale, resolve aliases and drop the region subtag."""
    value = (locale or "").strip().lower().replace("_", "-")
    if not value:
        return DEFAULT_LOCALE
    if value in LOCALE_ALIASES:
        return LOCALE_ALIASES[value]
    base = value.split("-")[0]
    return LOCALE_ALIASES.get(base, base)


def detect_language(text: str) -> Outcome[str]:
    """Most likely language of `text`, defaulting to English."""
    cleaned = (text or "").strip()
    if len(cleaned) < 3 or _NON_LINGUISTIC.match(cleaned):
        return Outcome.default(DEFAULT_LOCALE, "text too short or non-linguistic")

    try:
        candidates = detect_langs(cleaned)
    except LangDetectException as exc:
        logger.debug("Language detection failed: %s", exc)
        return Outcome.default(DEFAULT_LOCALE, exc)

    if not candidates:
        return Outcome.default(DEFAULT_LOCALE, "no language candidates")
    return Outcome.primary(normalize_locale(candidates[0].lang))
