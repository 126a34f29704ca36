"""
Data models for weather lookups.

This module defines Pydantic models for the normalized weather shape
returned by lookups, independent of the upstream provider's raw format.

All models are frozen: a cached value is never mutated, tagging a result
as served from cache produces a copy.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """
    Geographic coordinates of the resolved location.

    Attributes:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees
    """

    model_config = ConfigDict(frozen=True)

    lat: Optional[float] = Field(default=None, ge=-90, le=90, description="Latitude")
    lon: Optional[float] = Field(default=None, ge=-180, le=180, description="Longitude")

    def __str__(self) -> str:
        if self.lat is None or self.lon is None:
            return "(unknown)"
        return f"({self.lat:.4f}, {self.lon:.4f})"


class Condition(BaseModel):
    """Weather condition text and icon."""

    model_config = ConfigDict(frozen=True)

    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class Temperature(BaseModel):
    """
    Temperature block in degrees Celsius.

    temp_min and temp_max are derived as the current temperature +/- 2
    degrees; the provider's current endpoint has no daily range.
    """

    model_config = ConfigDict(frozen=True)

    temp: int = Field(..., description="Current temperature (C), rounded")
    feels_like: Optional[int] = Field(default=None, description="Feels-like temperature (C), rounded")
    temp_min: int = Field(..., description="Approximate minimum temperature (C)")
    temp_max: int = Field(..., description="Approximate maximum temperature (C)")
    pressure: Optional[float] = Field(default=None, description="Pressure (mb)")
    humidity: Optional[float] = Field(default=None, description="Relative humidity (%)")


class Wind(BaseModel):
    """
    Wind block.

    Attributes:
        speed: Wind speed in km/h
        deg: Wind direction in degrees (0=North)
        dir: Cardinal direction string (N, SW, etc.)
    """

    model_config = ConfigDict(frozen=True)

    speed: Optional[float] = Field(default=None, description="Wind speed (km/h)")
    deg: Optional[float] = Field(default=None, description="Wind direction in degrees")
    dir: Optional[str] = Field(default=None, description="Cardinal direction")


class NormalizedWeather(BaseModel):
    """
    Canonical weather result for a single location.

    Built once from an upstream payload and stored in the lookup cache.
    ``from_cache`` is the only field that differs between a fresh result
    and the same result served from cache.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    city: Optional[str] = None
    country: Optional[str] = None
    coordinates: Coordinates = Field(default_factory=Coordinates)
    weather: Condition = Field(default_factory=Condition)
    main: Temperature
    wind: Wind = Field(default_factory=Wind)
    visibility: Optional[float] = Field(default=None, description="Visibility (km)")
    last_updated: Optional[str] = Field(default=None, description="Provider local time")
    aqi: Dict[str, Any] = Field(default_factory=dict, description="Air quality readings")
    is_day: Literal["day", "night"] = "night"
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When data was fetched from upstream"
    )
    from_cache: bool = Field(default=False, alias="fromCache")

    @property
    def location_label(self) -> str:
        """Human-readable "City, Country" label."""
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) if parts else str(self.coordinates)

    def tagged(self, from_cache: bool) -> "NormalizedWeather":
        """Return a copy carrying the given cache tag."""
        return self.model_copy(update={"from_cache": from_cache})

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedWeather":
        """Create from dictionary (JSON deserialization)."""
        return cls.model_validate(data)
