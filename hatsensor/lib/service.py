"""Service runner utility with graceful shutdown on termination signals."""

import asyncio
import signal
from collections.abc import Awaitable, Callable, Iterable

from hatsensor.lib.exceptions import HatSensorError
from hatsensor.logging import configure, get_logger

logger = get_logger("lib.service")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """One-shot cancellation broadcast to every task waiting on it.

    Triggering is idempotent: only the first trigger is acted upon, later
    ones (a second Ctrl-C, a SIGTERM after SIGINT) have no further effect.
    Must be triggered from the event loop thread.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: str = "Shutdown requested") -> bool:
        """Request shutdown. Returns True only for the first request."""
        if self._event.is_set():
            logger.debug("%s, shutdown already in progress", reason)
            return False
        self.reason = reason
        logger.info("%s, initiating graceful shutdown...", reason)
        self._event.set()
        return True

    async def wait(self) -> None:
        """Block until shutdown is requested."""
        await self._event.wait()

    def install(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
    ) -> None:
        """Register signal handlers that trigger this shutdown signal."""
        for sig in signals:
            loop.add_signal_handler(sig, self.trigger, f"Received {sig.name}")

    def uninstall(
        self,
        loop: asyncio.AbstractEventLoop,
        signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
    ) -> None:
        """Restore default handling of the given signals."""
        for sig in signals:
            loop.remove_signal_handler(sig)


def run_service(
    main: Callable[[ShutdownSignal], Awaitable[None]],
    *,
    name: str = "service",
) -> int:
    """Run an async service with signal handling.

    Provides a standard entry point for long running services that:
    - Configures logging
    - Turns SIGINT/SIGTERM into a cooperative shutdown signal
    - Runs the async service function until it returns
    - Maps the outcome to a process exit code

    Args:
        main: Async function to run, receiving the shutdown signal.
        name: Service name for logging.

    Returns:
        0 after a clean shutdown, 1 if an application error ended the
        service (startup failure or fatal publish failure).
    """
    service_logger = get_logger(f"{name}.service")

    configure()

    shutdown = ShutdownSignal()

    async def _main() -> None:
        loop = asyncio.get_running_loop()
        shutdown.install(loop)
        try:
            await main(shutdown)
        finally:
            shutdown.uninstall(loop)

    try:
        asyncio.run(_main())
    except HatSensorError as e:
        service_logger.critical(
            "%s service terminated: %s", name.capitalize(), e
        )
        return 1

    service_logger.info("%s service stopped", name.capitalize())
    return 0
