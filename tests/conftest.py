"""Shared pytest fixtures for the test suite."""

import logging
import threading
import time
from datetime import UTC, datetime

import pytest

from hatsensor.dht.models import Reading
from hatsensor.dht.session import ServiceSession
from hatsensor.lib.config import Settings
from hatsensor.lib.config.testing import clear_settings
from hatsensor.lib.exceptions import PublishError


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the hatsensor namespace."""
    caplog.set_level(logging.INFO, logger="hatsensor")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Remove service variables the host environment may define."""
    for name, field in Settings.model_fields.items():
        env_name = field.validation_alias or name
        monkeypatch.delenv(str(env_name).upper(), raising=False)


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to avoid cross-test pollution."""
    yield
    clear_settings()


@pytest.fixture
def settings():
    """Valid settings for a device talking to a test broker."""
    return Settings(
        _env_file=None,
        aws_broker="ssl://broker.example.com:8883",
        aws_topic="sensors/test",
        aws_client_id="test-client",
        sensor_id="TEST-01",
    )


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def sample_reading(frozen_time):
    """Create a valid DHT22 reading."""
    return Reading(
        humidity=55.2,
        temperature=21.3,
        sensor_id="TEST-01",
        timestamp=frozen_time,
    )


class FakeSampler:
    """Sampler returning scripted outcomes (a Reading or an exception)."""

    def __init__(self, outcomes, on_sample=None):
        self._outcomes = list(outcomes)
        self._on_sample = on_sample
        self.calls = 0
        self.closed = False

    def sample(self):
        self.calls += 1
        if self._on_sample is not None:
            self._on_sample(self.calls)
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class RecordingTransport:
    """Transport recording every publish call and its timing."""

    def __init__(self, fail_on=(), delay_sec=0.0, on_publish=None):
        self._fail_on = set(fail_on)
        self._delay_sec = delay_sec
        self._on_publish = on_publish
        self._lock = threading.Lock()
        self._active = 0
        self.max_concurrent = 0
        self.calls: list[tuple[str, bytes, float]] = []
        self.disconnects: list[int] = []

    @property
    def is_connected(self):
        return not self.disconnects

    def connect(self):
        pass

    def publish(self, topic, payload):
        with self._lock:
            self._active += 1
            self.max_concurrent = max(self.max_concurrent, self._active)
        try:
            self.calls.append((topic, payload, time.monotonic()))
            if self._on_publish is not None:
                self._on_publish(len(self.calls))
            if len(self.calls) in self._fail_on:
                raise PublishError("broker rejected message")
            if self._delay_sec:
                time.sleep(self._delay_sec)
        finally:
            with self._lock:
                self._active -= 1

    def disconnect(self, grace_ms=250):
        self.disconnects.append(grace_ms)


@pytest.fixture
def make_sampler():
    """Factory for scripted samplers."""
    return FakeSampler


@pytest.fixture
def make_transport():
    """Factory for recording transports."""
    return RecordingTransport


@pytest.fixture
def make_session():
    """Factory assembling a ServiceSession around fake collaborators."""

    def _make(sampler, transport, interval_sec=0.05):
        return ServiceSession(
            sampler=sampler,
            sensor_id="TEST-01",
            interval_sec=interval_sec,
            topic="sensors/test",
            transport=transport,
        )

    return _make
