"""
Custom exceptions for the civic issue router.

Only ModelError subclasses ever escape a top-level resolve() call; every other
degraded condition is absorbed and reported through the result's fallback level.
"""


class CivicRouterError(Exception):
    """Base exception for civic router errors."""
    pass


class APIKeyMissingError(CivicRouterError):
    """Required API key is not configured."""
    pass


class ModelError(CivicRouterError):
    """Model Gateway failed terminally.

    kind tells callers how to present the failure:
    "transport" (upstream unavailable), "malformed" (unusable output),
    "blocked" (safety refusal).
    """
    kind = "model"


class TransportError(ModelError):
    """Upstream call failed and retries (if any) were exhausted."""
    kind = "transport"

    def __init__(
        self,
        message: str,
        attempts: int = 1,
        total_delay: float = 0.0,
        last_reason: str | None = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.total_delay = total_delay
        self.last_reason = last_reason


class TransientModelError(TransportError):
    """A single retryable failure. The gateway backs off and retries these."""
    reason = "transient"

    def __init__(self, message: str):
        super().__init__(message, last_reason=self.reason)


class RateLimitedError(TransientModelError):
    """HTTP 429 / quota exhausted."""
    reason = "rate_limited"


class ServiceUnavailableError(TransientModelError):
    """HTTP 5xx from the model backend."""
    reason = "unavailable"


class TruncatedResponseError(TransientModelError):
    """Output was cut off (token limit) before the JSON object closed."""
    reason = "truncated"


class MalformedOutputError(ModelError):
    """Response could not be repaired into the requested JSON shape."""
    kind = "malformed"

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class ModelBlockedError(ModelError):
    """Model refused to answer (safety policy) or returned no content."""
    kind = "blocked"

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason
