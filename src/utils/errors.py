"""Custom exception hierarchy for the bird photo service.

All application exceptions inherit from :class:`BirdPhotoError`, which
carries an optional ``provider_name`` so error handlers can tell which
external collaborator (e.g. "wikipedia", "unsplash", "ebird", "sqlite")
caused the failure.

The hierarchy follows the error taxonomy of the photo pipeline:

    BirdPhotoError  (base -- catch-all for any application error)
    +-- InvalidRequestError      (malformed lookup input, HTTP 400)
    +-- InvalidTransitionError   (illegal cache-entry state change)
    +-- CacheStoreError          (document store read/write failure)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RateLimitError           (provider request budget exhausted)
    +-- ConfigurationError       (startup / missing config)

Each class declares the HTTP status and the short machine-readable code
that :class:`~src.api.middleware.ErrorHandlingMiddleware` uses when the
error escapes a route handler.
"""


class BirdPhotoError(Exception):
    """Base exception for all bird photo service errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for log scanning, e.g. ``[wikipedia] Request timed out``.
    """

    status_code: int = 500
    error_code: str = "internal"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Request / state errors
# ---------------------------------------------------------------------------

class InvalidRequestError(BirdPhotoError):
    """Raised when a caller sends a structurally invalid request.

    This is the only error class in the lookup path that reaches the
    client; everything else degrades to a ``null`` photo.
    """

    status_code = 400
    error_code = "invalid-argument"

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidTransitionError(BirdPhotoError):
    """Raised when a cache entry is asked to move along an illegal edge."""

    status_code = 409
    error_code = "invalid-transition"

    def __init__(
        self,
        message: str = "Illegal cache entry transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheStoreError(BirdPhotoError):
    """Raised when the photo cache document store cannot be read or written."""

    status_code = 503
    error_code = "unavailable"

    def __init__(
        self,
        message: str = "Photo cache store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(BirdPhotoError):
    """Raised when an external service or provider is unreachable.

    Inside the enrichment worker this counts as a transient failure and is
    retried with exponential backoff.
    """

    status_code = 502
    error_code = "unavailable"

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(BirdPhotoError):
    """Raised when an API request budget is exhausted."""

    status_code = 429
    error_code = "resource-exhausted"

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(BirdPhotoError):
    """Raised when configuration is invalid or missing (e.g. no API key)."""

    status_code = 503
    error_code = "failed-precondition"

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
