"""Tests for logging configuration."""

import io
import logging

import pytest

from hatsensor.logging import configure, get_logger


@pytest.fixture
def service_logger():
    """The namespace logger, with its handlers restored afterwards."""
    logger = logging.getLogger("hatsensor")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestConfigure:
    """Tests for configure()."""

    def test_handler_added_once(self, service_logger):
        configure()
        configure()

        ours = [
            h
            for h in service_logger.handlers
            if type(h).__name__ == "_StderrHandler"
        ]
        assert len(ours) == 1

    def test_second_call_updates_level(self, service_logger):
        configure()
        configure(logging.DEBUG)

        assert service_logger.level == logging.DEBUG

    def test_writes_to_current_stderr(self, service_logger, monkeypatch):
        configure()
        stream = io.StringIO()
        monkeypatch.setattr("sys.stderr", stream)

        get_logger("test").warning("sensor unplugged")

        assert "hatsensor.test WARNING - sensor unplugged" in stream.getvalue()

    def test_paho_logger_quietened(self, service_logger):
        configure()

        paho = logging.getLogger("hatsensor.lib.transport.paho")
        assert paho.level == logging.WARNING


def test_get_logger_namespaced():
    assert get_logger("dht.polling").name == "hatsensor.dht.polling"
