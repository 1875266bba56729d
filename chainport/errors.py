# chainport/errors.py
"""
Error taxonomy shared by the repository, the executor and the HTTP layer.

Every error carries the HTTP status the routes answer with and a short
``kind`` string that ends up in failed execution results.
"""

from typing import Optional


class ChainportError(Exception):
    status_code = 500
    kind = "unknown"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChainportError):
    """Missing or empty input, missing credential, empty step list."""

    status_code = 400
    kind = "validation"


class NotFoundError(ChainportError):
    status_code = 404
    kind = "not_found"


class UpstreamError(ChainportError):
    """The chat-completion service failed or returned something unusable."""

    kind = "upstream"

    # provider status -> (our status, sub-kind)
    STATUS_MAP = {
        400: (400, "bad_request"),
        401: (401, "unauthorized"),
        429: (429, "rate_limited"),
    }

    def __init__(self, message: str, provider_status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.provider_status = provider_status
        if reason is not None:
            self.reason = reason
            self.status_code = 504 if reason == "timeout" else 500
        elif provider_status in self.STATUS_MAP:
            self.status_code, self.reason = self.STATUS_MAP[provider_status]
        else:
            self.status_code = 500
            self.reason = "server_error"

    @classmethod
    def from_exception(cls, exc: Exception) -> "UpstreamError":
        """
        Map a provider exception onto the upstream taxonomy.

        OpenAI client errors expose ``status_code``; anything without one
        (connection errors, malformed payloads) is treated as a server error.
        """
        status = getattr(exc, "status_code", None)
        detail = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        if status == 401:
            message = "Invalid API key. Please check your OpenAI API key."
        elif status == 429:
            message = "Rate limit exceeded. Please try again later."
        elif status == 400:
            message = f"Invalid request: {detail}"
        elif isinstance(status, int) and status >= 500:
            message = f"OpenAI server error: {detail}"
        else:
            message = f"OpenAI API error: {detail}"
        return cls(message, provider_status=status)


class StoreUnavailableError(ChainportError):
    """The durable chain store could not be reached."""

    status_code = 503
    kind = "store_unavailable"


class PersistenceDegraded(ChainportError):
    """
    Raised internally when a chain could not be written to the durable store.

    Never surfaced as a failure: ``create`` turns it into a warning.
    """

    status_code = 200
    kind = "persistence_degraded"


class UnknownError(ChainportError):
    status_code = 500
    kind = "unknown"
