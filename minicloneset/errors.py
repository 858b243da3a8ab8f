"""
Error taxonomy for reconciliation passes.

Only ``NotFoundError`` at the top-level fetch is swallowed; everything else
propagates out of the pass. Retryable errors are redelivered with backoff,
``ConversionError`` is a contract violation and is never retried.
"""


class MiniCloneSetError(Exception):
    """Base class for all operator errors."""


class RetryableError(MiniCloneSetError):
    """The pass failed but may succeed when redelivered."""


class NotFoundError(RetryableError):
    """The requested object does not exist (HTTP 404)."""


class ConflictError(RetryableError):
    """Optimistic-concurrency violation or name clash (HTTP 409)."""


class TransientError(RetryableError):
    """Transport failure or unexpected API server response."""


class PassCancelled(RetryableError):
    """The pass was cancelled or ran past its deadline."""


class ConversionError(MiniCloneSetError):
    """A conversion was invoked with an object of the wrong version."""
