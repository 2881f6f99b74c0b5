"""Custom exception classes for the artist song lookup service."""


class LookupServiceError(Exception):
    """Base exception for all lookup service errors."""

    status_code: int = 500

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(LookupServiceError):
    """Raised when lookup parameters fail validation."""

    status_code = 422


class ArtistNotFoundError(LookupServiceError):
    """Raised when the upstream search returns no candidates for a name."""

    status_code = 404


class UpstreamError(LookupServiceError):
    """Base exception for failures talking to the Genius API."""

    status_code = 502


class UpstreamFormatError(UpstreamError):
    """Raised when the Genius API returns a malformed or non-JSON body."""

    pass


class UpstreamAuthError(UpstreamError):
    """Raised when the Genius API rejects our credentials (HTTP 401)."""

    pass


class UpstreamThrottledError(UpstreamError):
    """Raised when the Genius API rate limits us (HTTP 429)."""

    pass


class UpstreamClientError(UpstreamError):
    """Raised for any other 4xx response from the Genius API."""

    def __init__(self, status: int, message: str | None = None, details: dict | None = None):
        self.status = status
        super().__init__(message or f"API request failed ({status})", details)


class UpstreamAvailabilityError(UpstreamError):
    """Transient upstream failure: eligible for retry and for stale-cache fallback."""

    pass


class UpstreamUnavailableError(UpstreamAvailabilityError):
    """Raised on 5xx responses or when the Genius API cannot be reached."""

    pass


class UpstreamTimeoutError(UpstreamAvailabilityError):
    """Raised when the Genius API does not answer within the timeout."""

    status_code = 504


class CacheUnavailableError(LookupServiceError):
    """Raised by cache stores when the backing store is unreachable."""

    pass


class ServiceInitializationError(LookupServiceError):
    """Raised when a service fails to initialize."""

    pass


class ConfigurationError(LookupServiceError):
    """Raised when there's a configuration error."""

    pass
