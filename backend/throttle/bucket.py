"""
Token bucket rate limiter.

Tokens accumulate at a fixed rate up to a burst capacity; each gated operation
spends tokens and is denied when not enough remain. Elapsed time is read from
an injectable monotonic clock and converted to whole tokens by truncation, so
calls inside a sub-token window add nothing but still move the refill baseline
forward.

A bucket is owned by a single caller. It takes no locks; an owner sharing one
bucket between threads or tasks must serialize access itself.
"""

from __future__ import annotations

import copy
import math
from decimal import Decimal
from fractions import Fraction
from numbers import Integral, Rational, Real
from typing import TYPE_CHECKING

import structlog

from throttle.clock import MonotonicClock
from throttle.events import ConsumeEvent, RefillEvent, RefillSkippedEvent, log_event
from throttle.exceptions import InvalidBucketConfigError, InvalidTokenRequestError

logger = structlog.get_logger()

if TYPE_CHECKING:
    from throttle.clock import Clock
    from throttle.events import BucketEvent, BucketObserver
    from throttle.settings import BucketSettings


def _validate_count(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidBucketConfigError(field=field, value=value, reason="must be an integer")
    if value < 0:
        raise InvalidBucketConfigError(field=field, value=value, reason="must not be negative")
    return int(value)


def _validate_rate(value: object) -> float | Fraction | Decimal:
    if isinstance(value, Decimal):
        if value.is_nan():
            raise InvalidBucketConfigError(field="rate", value=value, reason="must be a number")
        if value.is_infinite() and value > 0:
            return math.inf
    elif isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidBucketConfigError(field="rate", value=value, reason="must be a real number")
    # `not >=` also rejects NaN
    if not value >= 0:
        raise InvalidBucketConfigError(field="rate", value=value, reason="must not be negative")
    return value


class TokenBucket:
    """
    Rate limiter using the token bucket algorithm.

    consume() refills from elapsed time, then either spends the full request
    and returns True, or leaves the bucket untouched and returns False.

    `rate` may be an int, float, Fraction or Decimal. Non-float rates are
    multiplied against elapsed time exactly; a positive infinite Decimal is
    stored as float infinity. Observer exceptions are logged and dropped.
    """

    def __init__(
        self,
        rate: float | Fraction | Decimal,
        capacity: int,
        initial_tokens: int | None = None,
        *,
        clock: Clock | None = None,
        observer: BucketObserver | None = None,
    ) -> None:
        self._rate = _validate_rate(rate)
        self._capacity = _validate_count("capacity", capacity)
        if initial_tokens is None:
            self._tokens = self._capacity
        else:
            self._tokens = min(_validate_count("initial_tokens", initial_tokens), self._capacity)
        self._clock: Clock = clock or MonotonicClock()
        self._observer: BucketObserver = observer or log_event
        self._last_refill_time = self._clock.now()

    @classmethod
    def from_settings(
        cls,
        settings: BucketSettings,
        *,
        clock: Clock | None = None,
        observer: BucketObserver | None = None,
    ) -> TokenBucket:
        """Build a bucket from BucketSettings."""
        return cls(
            rate=settings.rate,
            capacity=settings.capacity,
            initial_tokens=settings.initial_tokens,
            clock=clock,
            observer=observer,
        )

    @property
    def rate(self) -> float | Fraction | Decimal:
        """Tokens added per second."""
        return self._rate

    @property
    def capacity(self) -> int:
        """Maximum number of tokens the bucket holds."""
        return self._capacity

    @property
    def tokens(self) -> int:
        """Tokens available as of the last refill."""
        return self._tokens

    @property
    def last_refill_time(self) -> float:
        """Clock reading of the last refill."""
        return self._last_refill_time

    def consume(self, tokens: int) -> bool:
        """Try to spend `tokens` tokens. Returns True if admitted, False if rate-limited.

        Raises InvalidTokenRequestError unless `tokens` is a positive integer.
        """
        if isinstance(tokens, bool) or not isinstance(tokens, Integral) or tokens <= 0:
            raise InvalidTokenRequestError(requested=tokens)

        self.refill()

        tokens_before = self._tokens
        admitted = tokens <= self._tokens
        if admitted:
            self._tokens -= int(tokens)
            self._check_invariant()

        self._emit(
            ConsumeEvent(
                capacity=self._capacity,
                requested=int(tokens),
                admitted=admitted,
                tokens_before=tokens_before,
                tokens_after=self._tokens,
            ),
        )
        return admitted

    def refill(self) -> None:
        """Convert time elapsed since the last refill into tokens, capped at capacity.

        If the last refill time is ahead of the clock, nothing changes,
        including the last refill time itself.
        """
        now = self._clock.now()
        if self._last_refill_time > now:
            self._emit(
                RefillSkippedEvent(
                    capacity=self._capacity,
                    last_refill_time=self._last_refill_time,
                    now=now,
                    tokens=self._tokens,
                ),
            )
            return

        elapsed = now - self._last_refill_time
        tokens_before = self._tokens
        added = self._tokens_for(elapsed)
        self._tokens = min(self._capacity, self._tokens + added)
        # advanced even when nothing was added, so partial tokens are not carried over
        self._last_refill_time = now
        self._check_invariant()

        self._emit(
            RefillEvent(
                capacity=self._capacity,
                elapsed=elapsed,
                added=added,
                tokens_before=tokens_before,
                tokens_after=self._tokens,
            ),
        )

    def copy(self) -> TokenBucket:
        """Return an independent bucket with the same state, clock and observer."""
        return copy.copy(self)

    def _tokens_for(self, elapsed: float) -> int:
        """Whole tokens earned over `elapsed` seconds, saturated at the free space."""
        headroom = self._capacity - self._tokens
        if elapsed <= 0 or headroom == 0:
            return 0
        if not math.isfinite(elapsed):
            return headroom
        if isinstance(self._rate, Rational | Decimal):
            # exact, so integer or fractional rates beyond float range cannot overflow
            earned = Fraction(elapsed) * Fraction(self._rate)
        else:
            earned = elapsed * self._rate
            # inf * rate fills the bucket
            if not math.isfinite(earned):
                return headroom
        if earned >= headroom:
            return headroom
        return math.floor(earned)

    def _emit(self, event: BucketEvent) -> None:
        """Hand an event to the observer; a failing observer never changes the outcome."""
        try:
            self._observer(event)
        except Exception:
            logger.exception("bucket observer failed", event_type=event.type)

    def _check_invariant(self) -> None:
        if not 0 <= self._tokens <= self._capacity:
            msg = f"token count {self._tokens} outside [0, {self._capacity}]"
            raise AssertionError(msg)

    def __repr__(self) -> str:
        return (
            f"TokenBucket(rate={self._rate!r}, capacity={self._capacity!r}, "
            f"tokens={self._tokens!r}, last_refill_time={self._last_refill_time!r})"
        )
