"""Settings models and configuration loading for the sensor service."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from hatsensor.lib.config.constants import (
    DEFAULT_CERTIFICATE_PATH,
    DEFAULT_MQTT_TLS_PORT,
    DEFAULT_PRIVATE_KEY_PATH,
    DEFAULT_READ_ATTEMPTS,
    DEFAULT_READ_RETRY_DELAY_SEC,
    DEFAULT_REFRESH_INTERVAL_SEC,
    DEFAULT_ROOT_CA_PATH,
    MIN_REFRESH_INTERVAL_SEC,
    QOS_AT_MOST_ONCE,
)
from hatsensor.lib.config.enums import BrokerScheme, TemperatureUnit
from hatsensor.lib.exceptions import ConfigurationError


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'0' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v == "1"
    return bool(v)


def _parse_interval(v: Any) -> int:
    """Parse the refresh interval, falling back to the default when invalid.

    Non-integer values map to the default, values below the minimum are
    raised to the minimum so a bad value never spins the loop.
    """
    if v is None or v == "":
        return DEFAULT_REFRESH_INTERVAL_SEC
    try:
        interval = int(v)
    except (TypeError, ValueError):
        return DEFAULT_REFRESH_INTERVAL_SEC
    return max(MIN_REFRESH_INTERVAL_SEC, interval)


def _parse_unit(v: Any) -> Any:
    """Accept 'C', 'celsius', 'F', 'fahrenheit' as well as the enum values."""
    if isinstance(v, str) and v:
        return v.strip().lower()[0]
    return v


# Wildcards are only valid in subscriptions, NUL is never valid in a topic
_TOPIC_FORBIDDEN_CHARS = ("+", "#", "\x00")

_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_IntervalSec = Annotated[int, BeforeValidator(_parse_interval)]
_Unit = Annotated[TemperatureUnit, BeforeValidator(_parse_unit)]


def parse_broker_url(url: str) -> tuple[str, int]:
    """Split a broker address into host and port.

    Accepts ``ssl://host:port`` (the AWS IoT form), ``tls://``, ``mqtts://``,
    ``tcps://`` or a bare ``host[:port]``. The port defaults to 8883.

    Raises:
        ValueError: If the scheme is not a TLS scheme or the host is missing.
    """
    if "://" not in url:
        url = f"{BrokerScheme.SSL}://{url}"
    parts = urlsplit(url)
    schemes = [s.value for s in BrokerScheme]
    if parts.scheme not in schemes:
        raise ValueError(
            f"unsupported broker scheme '{parts.scheme}', "
            f"expected one of {', '.join(schemes)}"
        )
    if not parts.hostname:
        raise ValueError(f"broker address '{url}' has no host")
    return parts.hostname, parts.port or DEFAULT_MQTT_TLS_PORT


class BrokerSettings(BaseModel):
    """MQTT broker connection settings."""

    model_config = ConfigDict(frozen=True)

    url: str = ""
    host: str = ""
    port: int = DEFAULT_MQTT_TLS_PORT
    topic: str = ""
    client_id: str = ""
    qos: int = QOS_AT_MOST_ONCE
    keepalive_sec: int = 30
    connect_timeout_sec: float = 10.0
    connect_retries: int = 3
    publish_timeout_sec: float = 10.0
    disconnect_grace_ms: int = 250


class TLSSettings(BaseModel):
    """Client certificate material for the mutually authenticated link."""

    model_config = ConfigDict(frozen=True)

    root_ca_path: str = DEFAULT_ROOT_CA_PATH
    certificate_path: str = DEFAULT_CERTIFICATE_PATH
    private_key_path: str = DEFAULT_PRIVATE_KEY_PATH


class SamplingSettings(BaseModel):
    """Sensor sampling settings."""

    model_config = ConfigDict(frozen=True)

    sensor_id: str = ""
    interval_sec: int = DEFAULT_REFRESH_INTERVAL_SEC
    pin: str = "D2"
    unit: TemperatureUnit = TemperatureUnit.CELSIUS
    read_attempts: int = DEFAULT_READ_ATTEMPTS
    retry_delay_sec: float = DEFAULT_READ_RETRY_DELAY_SEC


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Broker (no safe default for these three)
    aws_broker: str = ""
    aws_topic: str = ""
    aws_client_id: str = ""
    mqtt_keepalive_sec: int = Field(default=30, ge=5)
    mqtt_connect_timeout_sec: float = Field(default=10.0, gt=0)
    mqtt_connect_retries: int = Field(default=3, ge=1)
    mqtt_publish_timeout_sec: float = Field(default=10.0, gt=0)
    disconnect_grace_ms: int = Field(default=250, ge=0)

    # TLS
    root_ca_path: str = DEFAULT_ROOT_CA_PATH
    certificate_path: str = DEFAULT_CERTIFICATE_PATH
    private_key_path: str = DEFAULT_PRIVATE_KEY_PATH

    # Sensor
    sensor_id: str = Field(default="", validation_alias="ID")
    refresh_interval: _IntervalSec = DEFAULT_REFRESH_INTERVAL_SEC
    dht_pin: str = "D2"
    temperature_unit: _Unit = TemperatureUnit.CELSIUS
    sensor_read_attempts: int = Field(default=DEFAULT_READ_ATTEMPTS, ge=1)
    sensor_retry_delay_sec: float = Field(
        default=DEFAULT_READ_RETRY_DELAY_SEC, ge=0
    )

    # Development
    mock_sensors: _BoolFromStr = False
    mock_broker: _BoolFromStr = False

    @cached_property
    def broker(self) -> BrokerSettings:
        """Get broker settings as nested object."""
        host, port = "", DEFAULT_MQTT_TLS_PORT
        if self.aws_broker:
            host, port = parse_broker_url(self.aws_broker)
        return BrokerSettings(
            url=self.aws_broker,
            host=host,
            port=port,
            topic=self.aws_topic,
            client_id=self.aws_client_id,
            keepalive_sec=self.mqtt_keepalive_sec,
            connect_timeout_sec=self.mqtt_connect_timeout_sec,
            connect_retries=self.mqtt_connect_retries,
            publish_timeout_sec=self.mqtt_publish_timeout_sec,
            disconnect_grace_ms=self.disconnect_grace_ms,
        )

    @cached_property
    def tls(self) -> TLSSettings:
        """Get TLS material locations."""
        return TLSSettings(
            root_ca_path=self.root_ca_path,
            certificate_path=self.certificate_path,
            private_key_path=self.private_key_path,
        )

    @cached_property
    def sampling(self) -> SamplingSettings:
        """Get sampling settings, resolving the sensor identity."""
        return SamplingSettings(
            sensor_id=self.sensor_id or self.aws_client_id,
            interval_sec=self.refresh_interval,
            pin=self.dht_pin,
            unit=self.temperature_unit,
            read_attempts=self.sensor_read_attempts,
            retry_delay_sec=self.sensor_retry_delay_sec,
        )

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate required and cross-field configuration constraints."""
        errors: list[str] = []

        if not self.mock_broker:
            missing = [
                name
                for name, value in (
                    ("AWS_BROKER", self.aws_broker),
                    ("AWS_TOPIC", self.aws_topic),
                    ("AWS_CLIENT_ID", self.aws_client_id),
                )
                if not value
            ]
            if missing:
                errors.append(f"Missing required: {', '.join(missing)}")

        if self.aws_broker:
            try:
                parse_broker_url(self.aws_broker)
            except ValueError as e:
                errors.append(f"AWS_BROKER is invalid: {e}")

        if any(c in self.aws_topic for c in _TOPIC_FORBIDDEN_CHARS):
            errors.append(
                "AWS_TOPIC must not contain wildcards (+, #) or NUL characters"
            )

        if not self.mock_sensors and not self.dht_pin:
            errors.append("DHT_PIN must be set when not using mock sensors")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings() or override_settings()
    from hatsensor.lib.config.testing to override.

    Raises:
        ConfigurationError: If the environment does not validate.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
