"""Centralized configuration for the sensor service.

This package provides:
- Enums for temperature units, measures and broker schemes
- Constants for sampling, sensor bounds and MQTT defaults
- Pydantic settings models resolved once from the environment
"""

from .constants import (
    DEFAULT_READ_ATTEMPTS,
    DEFAULT_REFRESH_INTERVAL_SEC,
    DHT22_BOUNDS,
    MIN_REFRESH_INTERVAL_SEC,
    QOS_AT_MOST_ONCE,
)
from .enums import BrokerScheme, MeasureName, TemperatureUnit
from .settings import (
    BrokerSettings,
    SamplingSettings,
    Settings,
    TLSSettings,
    get_settings,
    parse_broker_url,
)

__all__ = [
    # Enums
    "BrokerScheme",
    "MeasureName",
    "TemperatureUnit",
    # Settings models
    "BrokerSettings",
    "SamplingSettings",
    "Settings",
    "TLSSettings",
    # Constants
    "DEFAULT_READ_ATTEMPTS",
    "DEFAULT_REFRESH_INTERVAL_SEC",
    "DHT22_BOUNDS",
    "MIN_REFRESH_INTERVAL_SEC",
    "QOS_AT_MOST_ONCE",
    # Functions
    "get_settings",
    "parse_broker_url",
]
