"""
Upstream weather API client.

This module provides the interface for fetching current conditions from
the upstream provider (WeatherAPI.com ``/current.json``) with error
mapping, rate limiting, and normalization into ``NormalizedWeather``.

Usage:
    from weather_proxy.api.weather_client import WeatherClient

    client = WeatherClient()
    weather = client.get_current_weather("London")
"""

import logging
import math
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter

from config.settings import get_settings, Settings
from weather_proxy.api.errors import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    UpstreamError,
)
from weather_proxy.data.models import (
    Condition,
    Coordinates,
    NormalizedWeather,
    Temperature,
    Wind,
)

logger = logging.getLogger(__name__)

CURRENT_ENDPOINT = "/current.json"

# Provider error code for "No matching location found."
LOCATION_NOT_FOUND_CODE = 1006

INVALID_RESPONSE_MESSAGE = "Invalid response from weather API"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


class WeatherClient:
    """
    Client for the upstream weather API.

    Handles authentication, rate limiting and response validation. No
    request is ever retried; failures surface to the caller immediately.

    Attributes:
        api_key: Upstream API key
        base_url: API base URL
        session: Requests session shared by all calls
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the weather API client.

        Args:
            api_key: API key (uses settings if not provided)
            settings: Settings object (uses default if not provided)
            session: Pre-built session (a pooled one is created if None)
            clock: Monotonic time source for rate limiting
        """
        self.settings = settings or get_settings()

        if api_key:
            self.api_key = api_key
        else:
            self.api_key = self.settings.get_api_key()

        self.base_url = self.settings.weatherapi_base_url.rstrip("/")
        self.timeout = self.settings.request_timeout

        # Sliding window of upstream request times
        self._clock = clock or time.monotonic
        self._request_times: deque = deque()
        self._rate_lock = threading.Lock()
        self._max_requests = self.settings.rate_limit_max_requests
        self._window = self.settings.rate_limit_window_seconds

        self.session = session or self._create_session()

        logger.info("WeatherClient initialized")

    def _create_session(self) -> requests.Session:
        """Create requests session with connection pooling and no retries."""
        session = requests.Session()

        adapter = HTTPAdapter(max_retries=0, pool_maxsize=10)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()

    def _check_rate_limit(self) -> None:
        """
        Reserve a slot in the rate limit window.

        Raises:
            RateLimitError: If the window is already full
        """
        # Prune, check and reserve as one step; the client is shared across threads
        with self._rate_lock:
            now = self._clock()

            # Remove requests older than the window
            while self._request_times and self._request_times[0] <= now - self._window:
                self._request_times.popleft()

            if len(self._request_times) >= self._max_requests:
                retry_after = self._window - (now - self._request_times[0])
            else:
                self._request_times.append(now)
                return

        logger.warning(f"Rate limit reached, retry in {retry_after:.1f}s")
        raise RateLimitError(
            "Too many requests to the weather API, please try again later",
            retry_after=retry_after,
        )

    def _make_request(self, endpoint: str, params: Dict[str, Any]) -> dict:
        """
        Make an API request with rate limiting and error handling.

        Args:
            endpoint: API endpoint path
            params: Query parameters

        Returns:
            JSON response as dictionary

        Raises:
            UpstreamError: For network failures, API errors and bad bodies
            NotFoundError: When the provider does not know the location
            AuthenticationError: For auth failures
            RateLimitError: When the local rate limit is exhausted
        """
        self._check_rate_limit()

        url = f"{self.base_url}{endpoint}"

        # Log request (sanitize API key)
        logger.debug(f"API Request: {endpoint} params={params}")
        params = {**params, "key": self.api_key}

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"Weather API timed out after {self.timeout}s: {e}")
            raise UpstreamError("Failed to fetch weather data: request timed out") from e
        except requests.RequestException as e:
            logger.warning(f"Weather API request failed: {e}")
            raise UpstreamError(f"Failed to fetch weather data: {e.__class__.__name__}") from e

        self._handle_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, upstream_status=response.status_code) from e

        if not isinstance(data, dict):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, upstream_status=response.status_code)

        logger.debug(f"API Response: {len(response.content)} bytes")
        return data

    def _handle_error(self, response: requests.Response) -> None:
        """
        Handle HTTP error responses.

        The provider reports errors as ``{"error": {"code": ..., "message": ...}}``;
        its message is passed through when present.

        Args:
            response: Requests response object

        Raises:
            Appropriate exception based on status and provider error code
        """
        if 200 <= response.status_code < 300:
            return

        status = response.status_code

        try:
            error_data = response.json()
        except ValueError:
            error_data = {"raw": response.text[:500]}

        error = error_data.get("error") if isinstance(error_data, dict) else None
        if not isinstance(error, dict):
            error = {}

        message = error.get("message") or f"Failed to fetch weather data (HTTP {status})"
        code = error.get("code")

        logger.warning(f"Weather API error (HTTP {status}, code {code}): {message}")

        if code == LOCATION_NOT_FOUND_CODE or status == 404:
            raise NotFoundError(message, response=error_data, upstream_status=status)
        elif status in (401, 403):
            raise AuthenticationError(message, response=error_data, upstream_status=status)
        else:
            raise UpstreamError(message, response=error_data, upstream_status=status)

    def _normalize_current(self, data: dict) -> NormalizedWeather:
        """
        Normalize a ``/current.json`` payload.

        Temperatures are rounded to whole degrees and the min/max range is
        approximated as current +/- 2 degrees.

        Args:
            data: Raw response dictionary from API

        Returns:
            NormalizedWeather model

        Raises:
            UpstreamError: If required blocks or the temperature are missing
        """
        location = data.get("location")
        current = data.get("current")
        if not isinstance(location, dict) or not isinstance(current, dict):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, response=data)

        temp_c = current.get("temp_c")
        if isinstance(temp_c, bool) or not isinstance(temp_c, (int, float)) or not math.isfinite(temp_c):
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, response=data)

        feels_like = current.get("feelslike_c")
        condition = current.get("condition")
        if not isinstance(condition, dict):
            condition = {}
        air_quality = current.get("air_quality")

        try:
            return NormalizedWeather(
                city=location.get("name"),
                country=location.get("country"),
                coordinates=Coordinates(lat=location.get("lat"), lon=location.get("lon")),
                weather=Condition(
                    main=condition.get("text"),
                    description=condition.get("text"),
                    icon=condition.get("icon"),
                ),
                main=Temperature(
                    temp=round_half_up(temp_c),
                    feels_like=round_half_up(feels_like) if isinstance(feels_like, (int, float)) and math.isfinite(feels_like) else None,
                    temp_min=round_half_up(temp_c - 2),
                    temp_max=round_half_up(temp_c + 2),
                    pressure=current.get("pressure_mb"),
                    humidity=current.get("humidity"),
                ),
                wind=Wind(
                    speed=current.get("wind_kph"),
                    deg=current.get("wind_degree"),
                    dir=current.get("wind_dir"),
                ),
                visibility=current.get("vis_km"),
                last_updated=location.get("localtime"),
                aqi=air_quality if isinstance(air_quality, dict) else {},
                is_day="day" if current.get("is_day") == 1 else "night",
                timestamp=datetime.now(timezone.utc),
            )
        except ValidationError as e:
            logger.warning(f"Failed to normalize weather payload: {e}")
            raise UpstreamError(INVALID_RESPONSE_MESSAGE, response=data) from e

    def get_current_weather(self, query: str) -> NormalizedWeather:
        """
        Fetch current conditions for a city name or "lat,lon" query.

        Args:
            query: Location query passed to the provider as-is

        Returns:
            NormalizedWeather (untagged, ``from_cache`` is False)
        """
        logger.info(f"Fetching weather data for: {query}")

        params = {
            "q": query,
            "aqi": "yes",
        }

        raw_data = self._make_request(CURRENT_ENDPOINT, params)
        return self._normalize_current(raw_data)
