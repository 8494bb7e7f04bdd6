"""Generic async polling service abstraction.

Provides a reusable base class for sensor services that follow the
poll → publish pattern on a fixed period until asked to shut down.
"""
import asyncio
import math
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from hatsensor.lib.service import ShutdownSignal
from hatsensor.logging import get_logger


T = TypeVar("T")


class PollingService(ABC, Generic[T]):
    """Abstract base class for async sensor polling services.

    Implements the common polling loop pattern with:
    - Fixed period ticks, skipping ticks missed by a slow cycle
    - Cooperative shutdown, checked between cycles only
    - Error recovery, except for errors declared fatal
    """

    # Errors that end the loop instead of being handled by on_poll_error
    fatal_errors: tuple[type[Exception], ...] = ()

    def __init__(self, name: str, frequency_sec: float) -> None:
        """Initialize the polling service.

        Args:
            name: Service name for logging.
            frequency_sec: Polling period in seconds.
        """
        if frequency_sec <= 0:
            raise ValueError("frequency_sec must be positive")
        self.name = name
        self.frequency_sec = frequency_sec
        self._logger = get_logger(f"polling.{name}")

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare anything needed before the first tick."""

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources before exit.

        Called once when the polling loop exits, whether it was shut down
        or ended by a fatal error.
        """

    @abstractmethod
    async def poll(self) -> T | None:
        """Poll the sensor for a new reading.

        Returns:
            A reading object, or None if the reading failed and should be skipped.
        """

    @abstractmethod
    async def publish(self, reading: T) -> None:
        """Hand a reading over to its consumer.

        Args:
            reading: The reading to publish.
        """

    def on_poll_error(self, error: Exception) -> None:
        """Handle an error that occurred during a cycle.

        Override to customize error handling. Default logs the error.
        """
        self._logger.error("%s poll error: %s", self.name, error)

    async def _poll_cycle(self) -> None:
        """Execute a single poll → publish cycle."""
        reading = await self.poll()
        if reading is not None:
            await self.publish(reading)

    async def _wait_for_tick(
        self, shutdown: ShutdownSignal, deadline: float
    ) -> bool:
        """Wait until the tick deadline. Returns True if shutdown came first."""
        timeout = deadline - asyncio.get_running_loop().time()
        if timeout <= 0:
            return shutdown.is_set
        try:
            await asyncio.wait_for(shutdown.wait(), timeout)
        except TimeoutError:
            return shutdown.is_set
        return True

    def _next_deadline(self, deadline: float, now: float) -> float:
        """Advance to the next tick, dropping the ones already missed."""
        deadline += self.frequency_sec
        if deadline < now:
            missed = math.ceil((now - deadline) / self.frequency_sec)
            self._logger.warning(
                "%s cycle overran, skipping %d tick(s)", self.name, missed
            )
            deadline += missed * self.frequency_sec
        return deadline

    async def run(self, shutdown: ShutdownSignal) -> None:
        """Run the polling loop until shutdown or a fatal error.

        1. Calls initialize()
        2. On every tick runs poll → publish
        3. Calls cleanup() on exit
        """
        loop = asyncio.get_running_loop()
        try:
            await self.initialize()
            self._logger.info("%s polling service started", self.name)

            deadline = loop.time() + self.frequency_sec
            while not await self._wait_for_tick(shutdown, deadline):
                try:
                    await self._poll_cycle()
                except self.fatal_errors:
                    raise
                except Exception as e:
                    self.on_poll_error(e)
                deadline = self._next_deadline(deadline, loop.time())
        finally:
            self._logger.info("Cleaning up resources...")
            await self.cleanup()
            self._logger.info("%s shutdown complete", self.name)
