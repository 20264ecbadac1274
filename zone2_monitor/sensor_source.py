import logging
import random
import time
from abc import ABC, abstractmethod

from kivy.clock import Clock

from .zone_models import SensorStatus

logger = logging.getLogger(__name__)


class SampleSink(ABC):
    """Receiver for readings from any heart rate source."""

    @abstractmethod
    def on_sample(self, bpm, timestamp):
        """Called with a decoded bpm and the time it was recorded."""
        ...

    @abstractmethod
    def on_authorization_change(self, status):
        """Called with a SensorStatus whenever the source state changes."""
        ...


class HeartRateSource(ABC):
    """Unified interface all heart rate sources implement."""

    def __init__(self, sink, **kwargs):
        self.sink = sink
        self.status = SensorStatus.IDLE

    @abstractmethod
    def start(self):
        """Begin delivering samples. Must not block."""
        ...

    @abstractmethod
    def stop(self):
        ...

    def is_connected(self):
        return self.status == SensorStatus.CONNECTED

    def _set_status(self, status):
        if status == self.status:
            return
        self.status = status
        logger.info("%s status: %s", type(self).__name__, status.text)
        self.sink.on_authorization_change(status)


_SOURCE_REGISTRY = {}


def register_source(name):
    """Decorator to register a concrete HeartRateSource under a config name."""
    def deco(cls):
        _SOURCE_REGISTRY[name.lower()] = cls
        return cls
    return deco


def create_source(name, sink, **kwargs):
    key = (name or "").lower()
    if key not in _SOURCE_REGISTRY:
        raise ValueError(f"Unknown HR source '{name}'. Available: {available_sources()}")
    return _SOURCE_REGISTRY[key](sink, **kwargs)


def available_sources():
    return sorted(_SOURCE_REGISTRY.keys())


@register_source("simulated")
class SimulatedSource(HeartRateSource):
    """
    Random-walk heart rate for running without hardware.

    Drifts around ``base_bpm`` and occasionally surges so zone exits can be
    seen on the dashboard.
    """

    def __init__(self, sink, base_bpm=120, variation=15, interval=1.0, seed=None, **kwargs):
        super().__init__(sink, **kwargs)
        self.base_bpm = base_bpm
        self.variation = variation
        self.interval = interval
        self.bpm = base_bpm
        self._random = random.Random(seed)
        self._event = None

    def start(self):
        if self._event is not None:
            return
        self._event = Clock.schedule_interval(self._emit, self.interval)
        self._set_status(SensorStatus.CONNECTED)

    def stop(self):
        if self._event is not None:
            self._event.cancel()
            self._event = None
        self._set_status(SensorStatus.DISCONNECTED)

    def next_bpm(self):
        step = self._random.randint(-3, 3)
        # Pull back toward the base so the walk stays bounded
        if self.bpm > self.base_bpm + self.variation:
            step -= 2
        elif self.bpm < self.base_bpm - self.variation:
            step += 2
        if self._random.random() < 0.05:
            step += self._random.randint(10, 25)
        self.bpm = max(40, min(200, self.bpm + step))
        return self.bpm

    def _emit(self, dt):
        self.sink.on_sample(self.next_bpm(), time.time())
