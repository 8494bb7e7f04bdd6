"""Poll the DHT22 sensor and publish readings to the MQTT broker.

Every tick takes one reading and publishes it as JSON on the configured
topic. A failed sensor read only skips the tick. A failed publish means
the broker link is broken beyond what the client can recover, so the
service stops and exits non-zero for its supervisor to restart it.
"""

import asyncio
from typing_extensions import override

from hatsensor.dht.models import Reading
from hatsensor.dht.session import ServiceSession, open_session
from hatsensor.lib.config import get_settings
from hatsensor.lib.exceptions import PublishError, SampleError, SerializationError
from hatsensor.lib.polling import PollingService
from hatsensor.lib.service import ShutdownSignal, run_service
from hatsensor.logging import get_logger

logger = get_logger("dht.polling")


class DHTPublisherService(PollingService[Reading]):
    """Polling service publishing DHT22 readings to the broker."""

    fatal_errors = (PublishError,)

    def __init__(self, session: ServiceSession) -> None:
        super().__init__(name="DHT22", frequency_sec=session.interval_sec)
        self._session = session

    @override
    async def initialize(self) -> None:
        """Log where readings go; collaborators are already connected."""
        logger.info(
            "Publishing readings of sensor %s to topic %s every %ss",
            self._session.sensor_id,
            self._session.topic,
            self.frequency_sec,
        )

    @override
    async def cleanup(self) -> None:
        """Disconnect from the broker and release the sensor."""
        await asyncio.to_thread(self._session.close)

    @override
    async def poll(self) -> Reading | None:
        """Sample the DHT22 sensor in a worker thread."""
        try:
            reading = await asyncio.to_thread(self._session.sampler.sample)
        except SampleError as e:
            logger.warning("Read error: %s", e)
            return None

        logger.info(
            "Read temperature=%s humidity=%s%%",
            reading.temperature,
            reading.humidity,
        )
        return reading

    @override
    async def publish(self, reading: Reading) -> None:
        """Serialize the reading and publish it (at-most-once).

        Raises:
            PublishError: If the transport failed to send the message.
        """
        try:
            payload = reading.to_json()
        except SerializationError as e:
            logger.error("Error marshalling reading, skipping: %s", e)
            return

        topic = self._session.topic
        await asyncio.to_thread(self._session.transport.publish, topic, payload)
        logger.info("Successfully published message to topic: %s", topic)


async def run(shutdown: ShutdownSignal) -> None:
    """Open the session and publish until shutdown."""
    settings = get_settings()
    session = await open_session(settings)
    service = DHTPublisherService(session)
    await service.run(shutdown)


def main() -> None:
    """Main entry point for the publisher service."""
    raise SystemExit(run_service(run, name="dht"))


if __name__ == "__main__":
    main()
