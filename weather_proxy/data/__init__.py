"""
Data module for normalized weather models and tabular processing.
"""

from weather_proxy.data.models import (
    Condition,
    Coordinates,
    NormalizedWeather,
    Temperature,
    Wind,
)
from weather_proxy.data.processor import (
    convert_wind_speed,
    export_to_csv,
    weather_to_dataframe,
)

__all__ = [
    # Models
    "Coordinates",
    "Condition",
    "Temperature",
    "Wind",
    "NormalizedWeather",
    # Processing
    "weather_to_dataframe",
    "convert_wind_speed",
    "export_to_csv",
]
