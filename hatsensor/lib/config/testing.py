"""Settings overrides for tests. Not for production code."""

from collections.abc import Iterator
from contextlib import contextmanager

import hatsensor.lib.config.settings as _settings_module
from hatsensor.lib.config.settings import Settings, _load_settings


def set_settings(settings: Settings) -> None:
    """Make get_settings() return the given instance."""
    _settings_module._settings_override = settings


def clear_settings() -> None:
    """Drop any override and the cached environment load."""
    _settings_module._settings_override = None
    _load_settings.cache_clear()


@contextmanager
def override_settings(settings: Settings) -> Iterator[Settings]:
    """Override the settings for the duration of a block."""
    previous = _settings_module._settings_override
    set_settings(settings)
    try:
        yield settings
    finally:
        _settings_module._settings_override = previous
