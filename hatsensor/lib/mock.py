"""Mock collaborators for development.

Provides mock implementations of the sensor and broker interfaces that
work without hardware or network access. Used when MOCK_SENSORS=1 or
MOCK_BROKER=1 is set.
"""

import random

from hatsensor.lib.exceptions import PublishError
from hatsensor.logging import get_logger

logger = get_logger("lib.mock")


def _random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


class MockDHTSensor:
    """Mock DHT22 sensor that generates realistic readings.

    - Temperature: drift=0.15, bounds 15-30
    - Humidity: drift=0.3, bounds 30-70

    Like the real sensor, a read fails now and then with a checksum error.
    """

    def __init__(self, failure_rate: float = 0.05) -> None:
        self._temperature = random.uniform(20.0, 23.0)
        self._humidity = random.uniform(45.0, 55.0)
        self._failure_rate = failure_rate

    def _maybe_fail(self) -> None:
        if random.random() < self._failure_rate:
            raise RuntimeError("Checksum did not validate. Try again.")

    @property
    def temperature(self) -> float:
        self._maybe_fail()
        self._temperature = _random_walk(
            self._temperature, drift=0.15, min_val=15.0, max_val=30.0
        )
        return round(self._temperature, 1)

    @property
    def humidity(self) -> float:
        self._humidity = _random_walk(
            self._humidity, drift=0.3, min_val=30.0, max_val=70.0
        )
        return round(self._humidity, 1)

    def exit(self) -> None:
        """No-op for mock sensor."""


class MockTransport:
    """Mock broker transport that logs and records published payloads."""

    def __init__(self) -> None:
        self._connected = False
        self.published: list[tuple[str, bytes]] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        self._connected = True
        logger.info("Mock transport connected")

    def publish(self, topic: str, payload: bytes) -> None:
        if not self._connected:
            raise PublishError("Transport is not connected")
        self.published.append((topic, payload))
        logger.info("Mock publish to %s: %s", topic, payload.decode("utf-8"))

    def disconnect(self, grace_ms: int = 250) -> None:
        if self._connected:
            self._connected = False
            logger.info("Mock transport disconnected")
