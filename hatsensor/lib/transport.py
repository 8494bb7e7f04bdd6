"""MQTT transport to the remote broker.

Wraps a paho-mqtt client running its network loop in a background thread.
The client reconnects on its own after a lost connection; publishing while
disconnected fails and is reported to the caller.
"""

import ssl
import threading
import time
from typing import Any, Protocol

import paho.mqtt.client as mqtt

from hatsensor.lib.config import BrokerSettings
from hatsensor.lib.exceptions import ConnectError, PublishError
from hatsensor.logging import get_logger

logger = get_logger("lib.transport")

_RECONNECT_MIN_DELAY_SEC = 1
_RECONNECT_MAX_DELAY_SEC = 120


class Transport(Protocol):
    """Protocol defining the broker transport interface."""

    @property
    def is_connected(self) -> bool: ...
    def connect(self) -> None: ...
    def publish(self, topic: str, payload: bytes) -> None: ...
    def disconnect(self, grace_ms: int = 250) -> None: ...


class MQTTTransport:
    """Transport publishing to an MQTT broker over TLS."""

    def __init__(
        self, cfg: BrokerSettings, tls_context: ssl.SSLContext | None
    ) -> None:
        self._cfg = cfg
        self._tls_context = tls_context
        self._client: mqtt.Client | None = None
        self._connack = threading.Event()
        self._connect_error: str | None = None

    @property
    def is_connected(self) -> bool:
        """Check if the client holds a live broker connection."""
        return self._client is not None and self._client.is_connected()

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self._cfg.client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
        )
        if self._tls_context is not None:
            client.tls_set_context(self._tls_context)
        client.reconnect_delay_set(
            min_delay=_RECONNECT_MIN_DELAY_SEC,
            max_delay=_RECONNECT_MAX_DELAY_SEC,
        )
        client.enable_logger(get_logger("lib.transport.paho"))
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        return client

    def connect(self) -> None:
        """Open the broker connection and wait for the CONNACK.

        Raises:
            ConnectError: If the broker refuses or does not answer in time.
            OSError: If the socket or TLS handshake fails.
        """
        self._connack.clear()
        self._connect_error = None

        client = self._build_client()
        logger.info(
            "Connecting to MQTT broker %s:%d as %s",
            self._cfg.host,
            self._cfg.port,
            self._cfg.client_id,
        )
        client.connect(
            self._cfg.host, self._cfg.port, keepalive=self._cfg.keepalive_sec
        )
        client.loop_start()

        if not self._connack.wait(self._cfg.connect_timeout_sec):
            self._abort(client)
            raise ConnectError(
                f"No answer from {self._cfg.host}:{self._cfg.port} "
                f"after {self._cfg.connect_timeout_sec}s"
            )
        if self._connect_error is not None:
            self._abort(client)
            raise ConnectError(
                f"Broker refused connection: {self._connect_error}"
            )

        self._client = client

    def _abort(self, client: mqtt.Client) -> None:
        """Drop a connection attempt, closing its socket."""
        client.disconnect()
        client.loop_stop()

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        if reason_code.is_failure:
            self._connect_error = str(reason_code)
            logger.error("Connection refused by broker: %s", reason_code)
        else:
            logger.info("Connected to MQTT broker %s", self._cfg.host)
        self._connack.set()

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        if reason_code.is_failure:
            logger.warning("Connection lost: %s", reason_code)
        else:
            logger.info("Disconnected from MQTT broker %s", self._cfg.host)

    def publish(self, topic: str, payload: bytes) -> None:
        """Publish a payload with at-most-once delivery.

        Blocks until the message is written to the socket.

        Raises:
            PublishError: If the client is not connected, the message was
                rejected, or it was not sent within the publish timeout.
        """
        if self._client is None:
            raise PublishError("Transport is not connected")

        try:
            info = self._client.publish(
                topic, payload, qos=self._cfg.qos, retain=False
            )
        except ValueError as e:
            # paho rejects wildcard or empty topics and oversized payloads
            raise PublishError(f"Failed to publish to {topic}: {e}") from e
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                f"Failed to publish to {topic}: {mqtt.error_string(info.rc)}"
            )
        try:
            info.wait_for_publish(timeout=self._cfg.publish_timeout_sec)
        except (RuntimeError, ValueError) as e:
            raise PublishError(f"Failed to publish to {topic}: {e}") from e
        if not info.is_published():
            raise PublishError(
                f"Publishing to {topic} timed out after "
                f"{self._cfg.publish_timeout_sec}s"
            )

    def disconnect(self, grace_ms: int = 250) -> None:
        """Close the connection, letting pending writes flush for grace_ms."""
        client = self._client
        if client is None:
            return
        self._client = None

        deadline = time.monotonic() + grace_ms / 1000
        while client.want_write() and time.monotonic() < deadline:
            time.sleep(0.01)

        client.disconnect()
        client.loop_stop()
