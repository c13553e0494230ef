"""Text normalization and tokenization pipeline."""

from .normalizer import Normalizer
from .stemmer import Stemmer
from .stopwords import StopWords
from .tokenizer import Token, TokenizationResult, Tokenizer, TokenizerOptions, stem_text

__all__ = [
    "Normalizer",
    "Stemmer",
    "StopWords",
    "Token",
    "TokenizationResult",
    "Tokenizer",
    "TokenizerOptions",
    "stem_text",
]
