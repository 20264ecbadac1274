"""
Runtime configuration for the Zone 2 monitor.

Defaults can be overridden with environment variables, e.g.
``ZONE2_DEBOUNCE_INTERVAL=5 zone2-monitor``.
"""

import os
from dataclasses import dataclass

from .zone_models import DEBOUNCE_INTERVAL, STALENESS_WINDOW, TICK_INTERVAL, InvalidConfig

ENV_PREFIX = "ZONE2_"
DEFAULT_SETTINGS_FILE = "zone2_settings.json"
KNOWN_SOURCES = ("bluetooth", "simulated")


@dataclass
class AppConfig:
    staleness_window: float = STALENESS_WINDOW
    debounce_interval: float = DEBOUNCE_INTERVAL
    tick_interval: float = TICK_INTERVAL
    log_level: str = "INFO"
    log_file: str = ""
    source: str = "bluetooth"
    settings_path: str = DEFAULT_SETTINGS_FILE

    def validate(self):
        if self.staleness_window <= 0:
            raise InvalidConfig("staleness_window must be positive")
        if self.debounce_interval < 0:
            raise InvalidConfig("debounce_interval must not be negative")
        if self.tick_interval <= 0:
            raise InvalidConfig("tick_interval must be positive")
        if self.source not in KNOWN_SOURCES:
            raise InvalidConfig(f"source must be one of {KNOWN_SOURCES}, got {self.source!r}")
        return self

    @classmethod
    def from_env(cls, environ=None):
        """Build a config from ZONE2_* environment variables."""
        environ = os.environ if environ is None else environ
        config = cls()
        for name, kind in (
            ("staleness_window", float),
            ("debounce_interval", float),
            ("tick_interval", float),
            ("log_level", str),
            ("log_file", str),
            ("source", str),
            ("settings_path", str),
        ):
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                setattr(config, name, kind(raw))
            except ValueError:
                raise InvalidConfig(f"{ENV_PREFIX}{name.upper()} must be a number, got {raw!r}")
        config.log_level = config.log_level.upper()
        config.source = config.source.lower()
        return config.validate()
