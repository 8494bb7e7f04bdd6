"""Enumerations for the sensor service."""

from enum import StrEnum


class TemperatureUnit(StrEnum):
    """Unit temperatures are published in."""

    CELSIUS = "c"
    FAHRENHEIT = "f"


class MeasureName(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


class BrokerScheme(StrEnum):
    """URL schemes accepted for the broker address (all TLS)."""

    SSL = "ssl"
    TLS = "tls"
    MQTTS = "mqtts"
    TCPS = "tcps"
