"""Bucket event models and the default structlog observer.

TokenBucket reports every state transition to an observer callable after the
transition has been applied. The observer never influences the outcome of
consume() or refill(); swapping it out (or passing a no-op) only changes what
gets recorded.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger()


class BucketEventType(StrEnum):
    """Types of bucket events."""

    REFILL = "refill"
    REFILL_SKIPPED = "refill_skipped"
    CONSUME = "consume"


class BucketEvent(BaseModel):
    """Base class for bucket events."""

    model_config = ConfigDict(frozen=True)

    type: BucketEventType
    capacity: int


class RefillEvent(BucketEvent):
    """Elapsed time was converted into tokens (possibly zero of them)."""

    type: Literal[BucketEventType.REFILL] = BucketEventType.REFILL
    elapsed: float
    added: int
    tokens_before: int
    tokens_after: int


class RefillSkippedEvent(BucketEvent):
    """The last refill timestamp lies in the future; nothing was changed."""

    type: Literal[BucketEventType.REFILL_SKIPPED] = BucketEventType.REFILL_SKIPPED
    last_refill_time: float
    now: float
    tokens: int


class ConsumeEvent(BucketEvent):
    """Outcome of a consume() call, after its implicit refill."""

    type: Literal[BucketEventType.CONSUME] = BucketEventType.CONSUME
    requested: int
    admitted: bool
    tokens_before: int
    tokens_after: int


BucketObserver = Callable[[BucketEvent], None]


def log_event(event: BucketEvent) -> None:
    """Emit a bucket event as a structured log line."""
    fields = event.model_dump(exclude={"type"})
    if isinstance(event, RefillSkippedEvent):
        logger.warning("refill skipped, last refill time is ahead of clock", **fields)
        return
    logger.debug(f"bucket {event.type}", **fields)


def ignore_event(event: BucketEvent) -> None:  # noqa: ARG001
    """Observer that drops every event."""
