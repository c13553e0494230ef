"""Internationalized domain name risk analysis."""

from .detector import DomainRiskReport, HomographDetector, IDNContext, decode_punycode

__all__ = [
    "DomainRiskReport",
    "HomographDetector",
    "IDNContext",
    "decode_punycode",
]
