"""
API module for upstream weather retrieval and cached lookups.
"""

from weather_proxy.api.cache import WeatherCache
from weather_proxy.api.errors import (
    AuthenticationError,
    InvalidInputError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
    WeatherProxyError,
)
from weather_proxy.api.lookup import WeatherLookupCache
from weather_proxy.api.weather_client import WeatherClient

__all__ = [
    "WeatherCache",
    "WeatherClient",
    "WeatherLookupCache",
    # Errors
    "WeatherProxyError",
    "InvalidInputError",
    "UpstreamError",
    "NotFoundError",
    "AuthenticationError",
    "RateLimitError",
]
