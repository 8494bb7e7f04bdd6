"""Logging configuration for the sensor service.

Everything logs under the ``hatsensor`` namespace to stderr, where the
process supervisor (systemd, docker) collects it.
"""

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"

_NAMESPACE = "hatsensor"


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__()
        self.setFormatter(logging.Formatter(LOG_FORMAT))

    @property
    def stream(self) -> TextIO:
        return sys.stderr

    @stream.setter
    def stream(self, value: TextIO) -> None:
        pass


def configure(level: int | str = logging.INFO) -> None:
    """Attach the stderr handler to the service logger.

    Idempotent: a second call only updates the level.
    """
    root = logging.getLogger(_NAMESPACE)
    root.setLevel(level)
    if not any(isinstance(h, _StderrHandler) for h in root.handlers):
        root.addHandler(_StderrHandler())

    # paho logs every PINGREQ/PINGRESP at debug level
    logging.getLogger(f"{_NAMESPACE}.lib.transport.paho").setLevel(
        logging.WARNING
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger named ``hatsensor.<name>``."""
    return logging.getLogger(f"{_NAMESPACE}.{name}")
