"""Bounded task execution and tagged fallback outcomes.

Every call that leaves the process (DNS-over-HTTPS, clamd, file reads) is
wrapped with `bounded()` so a slow or failing collaborator yields a typed
`TimedResult` instead of raising into sibling detector tasks.

Best-effort steps (language detection, contraction expansion, stemming,
model loading) report which branch of their fallback chain produced the
value through `Outcome`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskStatus(str, Enum):
    """How a bounded task settled."""

    OK = "ok"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class TimedResult(Generic[T]):
    """Result-or-timeout sum type returned by `bounded()`."""

    status: TaskStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is TaskStatus.OK

    def value_or(self, default: T) -> T:
        """Return the value when the task succeeded, otherwise `default`."""
        return self.value if self.ok else default


async def bounded(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    *,
    label: str = "task",
) -> TimedResult[T]:
    """Await `awaitable` for at most `timeout` seconds.

    Timeouts and exceptions are logged at debug level and returned as
    `TIMED_OUT` / `ERROR`; cancellation of the caller still propagates.
    """
    try:
        value = await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.debug("%s timed out after %ss", label, timeout)
        return TimedResult(TaskStatus.TIMED_OUT, error=exc)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.debug("%s failed: %s", label, exc)
        return TimedResult(TaskStatus.ERROR, error=exc)
    return TimedResult(TaskStatus.OK, value=value)


class OutcomePath(str, Enum):
    """Which branch of a fallback chain produced a value."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    DEFAULT = "default"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """A value tagged with the fallback path that produced it."""

    value: T
    path: OutcomePath
    reason: str = ""

    @classmethod
    def primary(cls, value: T) -> "Outcome[T]":
        return cls(value, OutcomePath.PRIMARY)

    @classmethod
    def fallback(cls, value: T, reason: Any = "") -> "Outcome[T]":
        return cls(value, OutcomePath.FALLBACK, str(reason))

    @classmethod
    def default(cls, value: T, reason: Any = "") -> "Outcome[T]":
        return cls(value, OutcomePath.DEFAULT, str(reason))

    @property
    def is_primary(self) -> bool:
        return self.path is OutcomePath.PRIMARY
