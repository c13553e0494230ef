"""Language-aware tokenizer feeding the classifier."""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field, replace
from typing import Optional

from ..utils.tasks import Outcome
from .language import DEFAULT_LOCALE, detect_language, normalize_locale
from .normalizer import expand_contractions, fold_fullwidth, strip_markup
from .stemmer import Stemmer, default_stemmer
from .stopwords import StopWords, default_stopwords

logger = logging.getLogger(__name__)

MAX_TOKEN_LENGTH = 50

# Letters kept inside tokens in addition to Unicode word characters.
EXTENDED_LETTERS = (
    "a-zA-Z0-9"
    "À-ÖØ-öø-ÿ"
    "Ā-ſ"
    "ƀ-ɏ"
    "Ѐ-ӿ"
    "Ḁ-ỿ"
)
WHITESPACE_SEGMENTED_LOCALES = frozenset({"ja", "zh"})

_SEPARATORS = re.compile(rf"[^\w{EXTENDED_LETTERS}-]+")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Token:
    surface_form: str
    locale: str


@dataclass
class TokenizationResult:
    """Tokens plus the locale used and the fallback path of each best-effort step."""

    tokens: list[str]
    locale: str
    outcomes: dict[str, Outcome] = field(default_factory=dict)

    def as_tokens(self) -> list[Token]:
        return [Token(surface, self.locale) for surface in self.tokens]


@dataclass
class TokenizerOptions:
    mixed_language_detection: bool = False
    advanced_stemming: bool = False
    fallback_to_original: bool = True
    strict_stemming: bool = False
    hash_tokens: bool = False


class Tokenizer:
    """Turns text into normalized, stop-word-free, stemmed tokens.

    Steps run in a fixed order: markup stripping, language identification,
    locale normalization, full-width folding, contraction expansion,
    segmentation, case/length filtering, stop-word removal, stemming and
    optional hashing. Every step except strict stemming degrades to its input.
    """

    def __init__(
        self,
        options: Optional[TokenizerOptions] = None,
        *,
        stopwords: Optional[StopWords] = None,
        stemmer: Optional[Stemmer] = None,
    ):
        self.options = options or TokenizerOptions()
        self.stopwords = stopwords or default_stopwords()
        self.stemmer = stemmer or default_stemmer()

    @classmethod
    def from_config(cls, config, **kwargs) -> "Tokenizer":
        options = TokenizerOptions(
            advanced_stemming=config.enable_advanced_stemming,
            fallback_to_original=config.stemming_fallback_to_original,
            hash_tokens=config.hash_tokens,
        )
        kwargs.setdefault("stemmer", Stemmer(config.advanced_stemming_excluded))
        return cls(options, **kwargs)

    def tokenize(self, text: str, locale: Optional[str] = None, is_markup: bool = False) -> list[str]:
        return self.run(text, locale, is_markup).tokens

    def run(self, text: str, locale: Optional[str] = None, is_markup: bool = False) -> TokenizationResult:
        if not isinstance(text, str):
            raise TypeError(f"text must be str, not {type(text).__name__}")

        outcomes: dict[str, Outcome] = {}

        if is_markup:
            text = strip_markup(text)

        if not locale or self.options.mixed_language_detection:
            detected = detect_language(text)
            outcomes["language"] = detected
            locale = detected.value
        locale = normalize_locale(locale) or DEFAULT_LOCALE

        text = fold_fullwidth(text)

        expanded = expand_contractions(text)
        outcomes["contractions"] = expanded
        text = expanded.value

        tokens = self.segment(text, locale)
        tokens = [t.lower().strip() for t in tokens]
        tokens = [t for t in tokens if 1 <= len(t) <= MAX_TOKEN_LENGTH]

        tokens = self.stopwords.remove(tokens, locale)

        use_advanced = self.options.advanced_stemming and self.stemmer.is_advanced_supported(locale)
        stemmed = self.stemmer.stem(
            tokens,
            locale,
            fallback_to_original=self.options.fallback_to_original,
            advanced=use_advanced,
            strict=self.options.strict_stemming,
        )
        outcomes["stemming"] = stemmed
        tokens = stemmed.value

        if self.options.hash_tokens:
            tokens = [hashlib.sha256(t.encode("utf-8")).hexdigest()[:16] for t in tokens]

        return TokenizationResult(tokens=tokens, locale=locale, outcomes=outcomes)

    @staticmethod
    def segment(text: str, locale: str) -> list[str]:
        if locale in WHITESPACE_SEGMENTED_LOCALES:
            parts = _WHITESPACE.split(text)
        else:
            parts = _SEPARATORS.split(text)
        return [p for p in parts if p]


def stem_text(
    text: str,
    locale: str = "en",
    *,
    tokenizer: Optional[Tokenizer] = None,
    advanced: Optional[bool] = None,
    fallback_to_original: Optional[bool] = None,
) -> list[str]:
    """Tokenize and stem `text` for `locale`, overriding the stemming options."""
    if not isinstance(text, str) or not text.strip():
        return []
    tokenizer = tokenizer or Tokenizer()
    overrides = {}
    if advanced is not None:
        overrides["advanced_stemming"] = advanced
    if fallback_to_original is not None:
        overrides["fallback_to_original"] = fallback_to_original
    if overrides:
        tokenizer = Tokenizer(
            replace(tokenizer.options, **overrides),
            stopwords=tokenizer.stopwords,
            stemmer=tokenizer.stemmer,
        )
    return tokenizer.tokenize(text, locale)
