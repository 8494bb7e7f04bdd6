"""Custom exceptions for the sensor service.

Startup errors abort the process before the publishing loop starts, sample
and serialization errors only skip a cycle, and transport errors during
publishing terminate the process so the supervisor restarts it.
"""


class HatSensorError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(HatSensorError):
    """Raised when the environment does not yield a usable configuration."""


class StartupError(HatSensorError):
    """Base exception for collaborator initialization failures."""


class HardwareInitError(StartupError):
    """Raised when the sensor hardware cannot be initialized."""


class TLSConfigError(StartupError):
    """Raised when certificates or keys are missing or malformed."""


class TransportError(HatSensorError):
    """Base exception for broker transport errors."""


class ConnectError(TransportError):
    """Raised when the broker connection cannot be established."""


class PublishError(TransportError):
    """Raised when a message could not be handed to the broker."""


class SampleError(HatSensorError):
    """Raised when no valid reading could be taken from the sensor."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class SerializationError(HatSensorError):
    """Raised when a reading cannot be encoded into its payload."""
