# tests/conftest.py
import os

# Keep Kivy from parsing pytest's argv or spamming the console on import
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")

import pytest

from zone2_monitor.zone_models import InvalidConfig, ZoneConfig


class FakeSettings:
    """Stands in for UserSettings without touching a JsonStore."""

    def __init__(self, low=100, high=140, buffer=0):
        self.config = ZoneConfig(low, high, buffer)
        self.error = None

    def zone_config(self):
        if self.error:
            raise InvalidConfig(self.error)
        return self.config


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class RecordingSink:
    def __init__(self):
        self.samples = []
        self.statuses = []

    def on_sample(self, bpm, timestamp):
        self.samples.append((bpm, timestamp))

    def on_authorization_change(self, status):
        self.statuses.append(status)


@pytest.fixture
def fake_settings():
    return FakeSettings()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()
