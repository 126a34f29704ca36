"""
Cached weather lookups.

``WeatherLookupCache`` is the entry point used by front ends: it validates
the query, serves live cache entries, and otherwise fetches from upstream
and stores the normalized result.

Usage:
    from weather_proxy.api.lookup import WeatherLookupCache

    lookups = WeatherLookupCache.from_settings()
    weather = lookups.lookup("London")
    weather.from_cache  # False, then True on the next call
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from config.settings import get_settings, Settings
from weather_proxy.api.cache import WeatherCache
from weather_proxy.api.errors import InvalidInputError
from weather_proxy.api.weather_client import WeatherClient
from weather_proxy.data.models import NormalizedWeather

logger = logging.getLogger(__name__)


def normalize_city_key(city_name: object) -> str:
    """
    Build the cache key for a city name.

    Raises:
        InvalidInputError: If the name is not a non-blank string
    """
    if not isinstance(city_name, str) or not city_name.strip():
        raise InvalidInputError("Please provide a valid city name")
    return city_name.strip().lower()


def normalize_coordinates(lat: object, lon: object) -> Tuple[float, float]:
    """
    Validate a latitude/longitude pair.

    Raises:
        InvalidInputError: If either value is missing, non-numeric or out of range
    """
    if lat is None or lon is None or lat == "" or lon == "":
        raise InvalidInputError("Please provide valid latitude and longitude")
    if isinstance(lat, bool) or isinstance(lon, bool):
        raise InvalidInputError("Please provide valid latitude and longitude")

    try:
        lat_f = float(lat)  # type: ignore[arg-type]
        lon_f = float(lon)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise InvalidInputError("Please provide valid latitude and longitude")

    if not -90 <= lat_f <= 90:
        raise InvalidInputError(f"Invalid latitude: {lat}. Must be between -90 and 90.")
    if not -180 <= lon_f <= 180:
        raise InvalidInputError(f"Invalid longitude: {lon}. Must be between -180 and 180.")

    return lat_f, lon_f


class WeatherLookupCache:
    """
    Weather lookups with a bounded TTL cache in front of the upstream API.

    Concurrent misses for the same key are collapsed: the first caller
    fetches, later callers wait on a per-key lock and then read the cache.
    Failed lookups are never cached, so a waiter behind a failed fetch
    makes its own upstream call.
    """

    def __init__(self, client: WeatherClient, cache: WeatherCache[NormalizedWeather]):
        self.client = client
        self.cache = cache

        self._inflight: Dict[str, List] = {}
        self._inflight_guard = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "WeatherLookupCache":
        """Build client and cache from settings (default settings if None)."""
        settings = settings or get_settings()
        client = WeatherClient(settings=settings)
        cache: WeatherCache[NormalizedWeather] = WeatherCache(
            ttl=settings.cache_ttl,
            max_entries=settings.max_cache_entries,
        )
        return cls(client, cache)

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """Hold the in-flight lock for key; dropped once no caller needs it."""
        with self._inflight_guard:
            slot = self._inflight.get(key)
            if slot is None:
                slot = self._inflight[key] = [threading.Lock(), 0]
            slot[1] += 1

        try:
            with slot[0]:
                yield
        finally:
            with self._inflight_guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._inflight[key]

    def _cached_or_fetch(self, key: str, query: str) -> NormalizedWeather:
        # Each caller counts once: a hit here, or a hit or miss under the key lock
        cached = self.cache.get(key, record_miss=False)
        if cached is not None:
            logger.info(f"Cache hit for: {query}")
            return cached.tagged(from_cache=True)

        with self._key_lock(key):
            # Another caller may have filled the entry while we waited
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"Cache hit for: {query}")
                return cached.tagged(from_cache=True)

            try:
                weather = self.client.get_current_weather(query)
            except Exception as e:
                logger.error(f"Error fetching weather data for {query}: {e}")
                raise

            self.cache.set(key, weather)

        return weather.tagged(from_cache=False)

    def lookup(self, city_name: str) -> NormalizedWeather:
        """
        Look up current weather for a city.

        Args:
            city_name: City name; matched case-insensitively for caching

        Returns:
            NormalizedWeather tagged with ``from_cache``

        Raises:
            InvalidInputError: If the name is empty or whitespace only
            UpstreamError: If the provider call fails (NotFoundError when
                the provider does not know the city)
            RateLimitError: If the upstream rate limit is exhausted
        """
        key = normalize_city_key(city_name)
        return self._cached_or_fetch(key, city_name)

    def lookup_coordinates(self, lat: float, lon: float) -> NormalizedWeather:
        """
        Look up current weather for a latitude/longitude pair.

        Coordinates are cached at four decimal places.

        Raises:
            InvalidInputError: If either coordinate is missing or out of range
            UpstreamError: If the provider call fails
            RateLimitError: If the upstream rate limit is exhausted
        """
        lat_f, lon_f = normalize_coordinates(lat, lon)
        key = f"{lat_f:.4f},{lon_f:.4f}"
        return self._cached_or_fetch(key, f"{lat_f},{lon_f}")

    def cache_stats(self) -> dict:
        """Get cache statistics."""
        return self.cache.stats()

    def clear_cache(self) -> int:
        """Drop every cached lookup; returns the number dropped."""
        return self.cache.clear()

    def close(self) -> None:
        self.client.close()
