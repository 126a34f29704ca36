"""
Exceptions raised by weather lookups.

Every error carries an HTTP-equivalent ``status_code`` so a front end can
map it to a response without inspecting the message.
"""

from typing import Optional


class WeatherProxyError(Exception):
    """Base exception for weather lookup errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, response: Optional[dict] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.response = response
        super().__init__(message)


class InvalidInputError(WeatherProxyError):
    """Raised when a city name or coordinate pair is missing or invalid."""

    status_code = 400


class UpstreamError(WeatherProxyError):
    """Raised when the upstream provider fails or returns an unusable body."""

    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict] = None,
        upstream_status: Optional[int] = None,
    ):
        super().__init__(message, status_code, response)
        self.upstream_status = upstream_status


class NotFoundError(UpstreamError):
    """Raised when the provider reports the location as unknown."""

    status_code = 404


class AuthenticationError(UpstreamError):
    """Raised when the provider rejects the API key."""
    pass


class RateLimitError(WeatherProxyError):
    """Raised when the local upstream rate limit is exhausted."""

    status_code = 429

    def __init__(self, message: str, retry_after: float = 0.0):
        super().__init__(message)
        self.retry_after = retry_after
