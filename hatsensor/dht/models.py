"""Domain models for DHT22 sensor readings."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from hatsensor.lib.exceptions import SerializationError

PAYLOAD_FIELDS = ("humidity", "temperature", "pressure", "sensor_id", "timestamp")


def format_decimal(value: float) -> str:
    """Render a float in its shortest form, without a trailing '.0'."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


def format_timestamp(value: datetime) -> str:
    """Render an aware datetime as RFC 3339 with second precision."""
    text = value.isoformat(timespec="seconds")
    if value.utcoffset() is not None and not value.utcoffset():
        return text.removesuffix("+00:00") + "Z"
    return text


@dataclass(frozen=True, slots=True)
class Reading:
    """One sampled data point, ready to be published."""

    humidity: float
    temperature: float
    sensor_id: str
    timestamp: datetime
    # No pressure sensor on the board, kept for schema compatibility
    pressure: float = 0.0

    def __post_init__(self) -> None:
        if not 0 <= self.humidity <= 100:
            raise ValueError(
                f"humidity must be between 0 and 100, got {self.humidity}"
            )
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

    def to_payload(self) -> dict[str, str]:
        """Convert the reading to the published schema (all string values)."""
        return {
            "humidity": format_decimal(self.humidity),
            "temperature": format_decimal(self.temperature),
            "pressure": format_decimal(self.pressure),
            "sensor_id": self.sensor_id,
            "timestamp": format_timestamp(self.timestamp),
        }

    def to_json(self) -> bytes:
        """Encode the payload as UTF-8 JSON.

        Raises:
            SerializationError: If the payload cannot be encoded.
        """
        try:
            return json.dumps(self.to_payload()).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode reading: {e}") from e

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Reading:
        """Decode a published payload back into a reading.

        Raises:
            ValueError: If a field is missing or malformed.
        """
        missing = [name for name in PAYLOAD_FIELDS if name not in data]
        if missing:
            raise ValueError(f"payload is missing: {', '.join(missing)}")
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return cls(
            humidity=float(data["humidity"]),
            temperature=float(data["temperature"]),
            sensor_id=str(data["sensor_id"]),
            timestamp=timestamp,
            pressure=float(data["pressure"]),
        )
