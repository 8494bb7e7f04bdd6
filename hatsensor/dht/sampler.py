"""Sampling of the DHT22 sensor into validated readings.

The DHT22 talks a timing-sensitive single-wire protocol and a fair share of
reads fail with checksum or short-buffer errors. Each sample therefore tries
the sensor several times, waiting between attempts since the sensor cannot
be read more often than every 2 seconds.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from hatsensor.dht.models import Reading
from hatsensor.lib.config import (
    DEFAULT_READ_ATTEMPTS,
    DHT22_BOUNDS,
    MeasureName,
    TemperatureUnit,
)
from hatsensor.lib.config.constants import DEFAULT_READ_RETRY_DELAY_SEC
from hatsensor.lib.exceptions import SampleError
from hatsensor.lib.retry import retry_blocking
from hatsensor.logging import get_logger

logger = get_logger("dht.sampler")


class DHTSensor(Protocol):
    """Protocol for DHT sensor interface."""

    @property
    def temperature(self) -> float | None: ...

    @property
    def humidity(self) -> float | None: ...

    def exit(self) -> None: ...


def _now() -> datetime:
    """Return the current local time, timezone-aware."""
    return datetime.now().astimezone()


def celsius_to_fahrenheit(value: float) -> float:
    return round(value * 9 / 5 + 32, 1)


class Sampler:
    """Takes one validated reading per call from a DHT sensor."""

    def __init__(
        self,
        sensor: DHTSensor,
        sensor_id: str,
        *,
        unit: TemperatureUnit = TemperatureUnit.CELSIUS,
        max_attempts: int = DEFAULT_READ_ATTEMPTS,
        retry_delay_sec: float = DEFAULT_READ_RETRY_DELAY_SEC,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._sensor = sensor
        self.sensor_id = sensor_id
        self._unit = unit
        self._max_attempts = max_attempts
        self._retry_delay_sec = retry_delay_sec
        self._clock = clock

    def _read_once(self) -> tuple[float, float]:
        """Read the sensor once, returning (humidity, temperature in Celsius).

        Raises:
            RuntimeError: If the driver reports a failed read.
            ValueError: If a value is outside the DHT22 physical range.
        """
        temperature = self._sensor.temperature
        humidity = self._sensor.humidity
        if temperature is None or humidity is None:
            raise RuntimeError("Sensor returned no data")

        for name, value in (
            (MeasureName.TEMPERATURE, temperature),
            (MeasureName.HUMIDITY, humidity),
        ):
            bmin, bmax = DHT22_BOUNDS[name]
            if not bmin <= value <= bmax:
                raise ValueError(
                    f"{name.capitalize()} reading outside bounds of DHT22 "
                    f"sensor: {value}"
                )
        return float(humidity), float(temperature)

    def sample(self) -> Reading:
        """Take one reading, retrying failed sensor reads.

        Blocks for up to ``max_attempts`` reads and the delays between them.

        Raises:
            SampleError: If every attempt failed.
        """
        try:
            humidity, temperature = retry_blocking(
                self._read_once,
                name="DHT22 read",
                logger=logger,
                max_attempts=self._max_attempts,
                delay_sec=self._retry_delay_sec,
                retryable_exceptions=(RuntimeError, ValueError),
            )
        except (RuntimeError, ValueError) as e:
            raise SampleError(
                f"No valid reading after {self._max_attempts} attempts: {e}",
                attempts=self._max_attempts,
            ) from e

        if self._unit is TemperatureUnit.FAHRENHEIT:
            temperature = celsius_to_fahrenheit(temperature)

        return Reading(
            humidity=humidity,
            temperature=temperature,
            sensor_id=self.sensor_id,
            timestamp=self._clock(),
        )

    def close(self) -> None:
        """Release the sensor."""
        self._sensor.exit()
