"""Typed exceptions for the token bucket.

A denied request is a normal ``False`` from ``TokenBucket.consume()`` and never
raises. The classes here cover the caller breaking the bucket's contract,
which must not be confused with a rate-limit outcome.
"""


class ThrottleError(Exception):
    """Base exception for the throttle package."""


class ContractViolationError(ThrottleError):
    """The caller broke the API contract of the bucket (programming error)."""


class InvalidTokenRequestError(ContractViolationError):
    """consume() was called with a token count that is not a positive integer.

    Attributes:
        requested: The value passed to consume().

    """

    def __init__(self, *, requested: object) -> None:
        self.requested = requested
        super().__init__(f"tokens should be a positive number, got {requested!r}")


class InvalidBucketConfigError(ThrottleError, ValueError):
    """A bucket parameter is negative or of the wrong type.

    Attributes:
        field: Name of the offending parameter.
        value: The rejected value.

    """

    def __init__(self, *, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"invalid {field}={value!r}: {reason}")
