"""Startup assembly of the sensor, TLS material and broker connection."""

from dataclasses import dataclass, field

from hatsensor.dht.sampler import DHTSensor, Sampler
from hatsensor.lib.config import Settings
from hatsensor.lib.exceptions import (
    ConnectError,
    HardwareInitError,
    TransportError,
)
from hatsensor.lib.retry import retry_async
from hatsensor.lib.transport import Transport
from hatsensor.logging import get_logger

logger = get_logger("dht.session")


@dataclass(slots=True)
class ServiceSession:
    """Long-lived run state, owning the sampler and the open transport."""

    sampler: Sampler
    sensor_id: str
    interval_sec: float
    topic: str
    transport: Transport
    disconnect_grace_ms: int = 250
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Disconnect the transport and release the sensor, once."""
        if self._closed:
            return
        self._closed = True

        try:
            self.transport.disconnect(self.disconnect_grace_ms)
        except (OSError, TransportError) as e:
            logger.warning("Error while disconnecting from broker: %s", e)
        else:
            logger.info("Broker connection closed")
        self.sampler.close()


def _create_sensor(settings: Settings) -> DHTSensor:
    """Create sensor based on configuration."""
    if settings.mock_sensors:
        from hatsensor.lib.mock import MockDHTSensor

        logger.info("Using mock DHT sensor")
        return MockDHTSensor()

    pin_name = settings.sampling.pin
    try:
        import board
        from adafruit_dht import DHT22

        pin = getattr(board, pin_name)
        return DHT22(pin, use_pulseio=False)  # type: ignore[no-any-return]
    except AttributeError as e:
        raise HardwareInitError(f"Unknown board pin {pin_name}") from e
    except (ImportError, NotImplementedError, RuntimeError, OSError) as e:
        raise HardwareInitError(
            f"Failed to initialize DHT22 on {pin_name}: {e}"
        ) from e


def _create_transport(settings: Settings) -> Transport:
    """Create the broker transport based on configuration."""
    if settings.mock_broker:
        from hatsensor.lib.mock import MockTransport

        logger.info("Using mock broker transport")
        return MockTransport()

    from hatsensor.lib.tls import create_tls_context
    from hatsensor.lib.transport import MQTTTransport

    return MQTTTransport(settings.broker, create_tls_context(settings.tls))


async def open_session(settings: Settings) -> ServiceSession:
    """Initialize every collaborator and connect to the broker.

    Raises:
        HardwareInitError: If the sensor cannot be set up.
        TLSConfigError: If the certificate material is unusable.
        ConnectError: If the broker stays unreachable after retries.
    """
    sampling = settings.sampling
    broker = settings.broker

    sampler = Sampler(
        _create_sensor(settings),
        sampling.sensor_id,
        unit=sampling.unit,
        max_attempts=sampling.read_attempts,
        retry_delay_sec=sampling.retry_delay_sec,
    )

    try:
        transport = _create_transport(settings)
        try:
            await retry_async(
                transport.connect,
                name="Broker connect",
                logger=logger,
                max_attempts=broker.connect_retries,
                retryable_exceptions=(OSError, ConnectError),
            )
        except (OSError, ConnectError) as e:
            raise ConnectError(
                f"Failed to connect to broker at {broker.url}: {e}"
            ) from e
    except BaseException:
        sampler.close()
        raise

    return ServiceSession(
        sampler=sampler,
        sensor_id=sampling.sensor_id,
        interval_sec=sampling.interval_sec,
        topic=broker.topic,
        transport=transport,
        disconnect_grace_ms=broker.disconnect_grace_ms,
    )
