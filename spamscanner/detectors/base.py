"""Shared detector interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..mail import Message
from .models import Finding


@dataclass(frozen=True)
class ScanContext:
    """Read-only input shared by every detector in one scan."""

    message: Message
    tokens: tuple[str, ...] = ()
    source: Optional[str] = None
    extras: dict = field(default_factory=dict)

    @property
    def body_text(self) -> str:
        """Plain text and html joined, as scanned for URLs and patterns."""
        return " ".join(part for part in (self.message.text, self.message.html) if part)


class Detector(Protocol):
    """Interface for detectors."""

    name: str

    async def detect(self, context: ScanContext) -> list[Finding]:  # pragma: no cover - interface
        ...
