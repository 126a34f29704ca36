"""
Data processing module for weather lookups.

This module turns lookup results into analysis-ready tables, including
wind speed unit conversion and CSV export.

Usage:
    from weather_proxy.data.processor import weather_to_dataframe

    df = weather_to_dataframe([lookups.lookup("London")], units="imperial")
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from weather_proxy.data.models import NormalizedWeather

logger = logging.getLogger(__name__)


# =============================================================================
# Unit Conversion Constants
# =============================================================================

# Conversion factors to meters per second (base unit)
WIND_SPEED_TO_MS = {
    "mph": 0.44704,        # miles per hour
    "m/s": 1.0,            # meters per second (base)
    "km/h": 0.277778,      # kilometers per hour
    "kph": 0.277778,       # alias for km/h
    "knots": 0.514444,     # nautical miles per hour
    "kts": 0.514444,       # alias for knots
}

# Wind speed unit used for each display unit system
UNIT_SYSTEM_WIND = {
    "metric": "km/h",
    "imperial": "mph",
}

COLUMNS = [
    "city",
    "country",
    "lat",
    "lon",
    "condition",
    "temp",
    "feels_like",
    "temp_min",
    "temp_max",
    "pressure",
    "humidity",
    "wind_speed",
    "wind_deg",
    "wind_dir",
    "visibility",
    "is_day",
    "last_updated",
    "from_cache",
]


# =============================================================================
# Unit Conversion
# =============================================================================

def celsius_to_fahrenheit(value: Optional[float]) -> Optional[float]:
    """Convert a Celsius temperature, passing None through."""
    if value is None:
        return None
    return round(value * 9 / 5 + 32)


def convert_wind_speed(
    value: Optional[float],
    from_unit: str,
    to_unit: str,
) -> Optional[float]:
    """
    Convert wind speed between units.

    Args:
        value: Wind speed (None passes through)
        from_unit: Source unit (mph, m/s, km/h, kph, knots, kts)
        to_unit: Target unit

    Returns:
        Converted wind speed

    Raises:
        ValueError: If either unit is unknown
    """
    from_unit = from_unit.lower()
    to_unit = to_unit.lower()

    if from_unit not in WIND_SPEED_TO_MS:
        raise ValueError(f"Unknown unit: {from_unit}. Valid units: {list(WIND_SPEED_TO_MS.keys())}")
    if to_unit not in WIND_SPEED_TO_MS:
        raise ValueError(f"Unknown unit: {to_unit}. Valid units: {list(WIND_SPEED_TO_MS.keys())}")

    if value is None:
        return None

    if from_unit == to_unit:
        return value

    value_ms = value * WIND_SPEED_TO_MS[from_unit]
    return round(value_ms / WIND_SPEED_TO_MS[to_unit], 1)


# =============================================================================
# DataFrame Conversion
# =============================================================================

def weather_to_dataframe(
    results: Iterable[NormalizedWeather],
    units: str = "metric",
) -> pd.DataFrame:
    """
    Convert lookup results to a pandas DataFrame.

    Creates one row per result, in input order. Temperatures are Celsius and
    wind km/h for metric; Fahrenheit and mph for imperial.

    Args:
        results: Lookup results
        units: 'metric' or 'imperial'

    Returns:
        DataFrame with the columns listed in COLUMNS
    """
    if units not in UNIT_SYSTEM_WIND:
        raise ValueError(f"Units must be one of: {set(UNIT_SYSTEM_WIND)}")

    imperial = units == "imperial"
    rows = []

    for weather in results:
        temps = weather.main
        temp_values = [temps.temp, temps.feels_like, temps.temp_min, temps.temp_max]
        if imperial:
            temp_values = [celsius_to_fahrenheit(t) for t in temp_values]

        rows.append({
            "city": weather.city,
            "country": weather.country,
            "lat": weather.coordinates.lat,
            "lon": weather.coordinates.lon,
            "condition": weather.weather.description,
            "temp": temp_values[0],
            "feels_like": temp_values[1],
            "temp_min": temp_values[2],
            "temp_max": temp_values[3],
            "pressure": temps.pressure,
            "humidity": temps.humidity,
            "wind_speed": convert_wind_speed(weather.wind.speed, "kph", UNIT_SYSTEM_WIND[units]),
            "wind_deg": weather.wind.deg,
            "wind_dir": weather.wind.dir,
            "visibility": weather.visibility,
            "is_day": weather.is_day,
            "last_updated": weather.last_updated,
            "from_cache": weather.from_cache,
        })

    df = pd.DataFrame(rows, columns=COLUMNS)
    logger.debug(f"Built DataFrame with {len(df)} rows ({units})")
    return df


def export_to_csv(df: pd.DataFrame, output_path: Path) -> Path:
    """
    Export a lookup DataFrame to CSV.

    Args:
        df: DataFrame from weather_to_dataframe()
        output_path: Destination file; parent directories are created

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"Exported {len(df)} rows to {output_path}")
    return output_path
