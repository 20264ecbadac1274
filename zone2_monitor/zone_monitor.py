"""
Session state holder for the Zone 2 monitor.

``ZoneMonitor`` wires sample filtering, classification, alerting and
time-in-zone together and publishes results through explicit Kivy events:

- ``on_reading(sample, state)``: a sample was accepted
- ``on_alert(alert)``: the user left the target zone
- ``on_status(status, text)``: sensor or configuration status changed
- ``on_update(snapshot)``: once per tick, for the presentation layer

It is not thread safe. Sources calling in from other threads must marshal
onto the Kivy main thread first (e.g. with ``Clock.schedule_once``).
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from kivy.clock import Clock
from kivy.event import EventDispatcher

from .hr_controller import ZoneClassifier
from .sample_ingest import SampleIngest
from .sensor_source import SampleSink
from .transition_tracker import TransitionTracker
from .zone_models import (
    DEBOUNCE_INTERVAL,
    STALENESS_WINDOW,
    AlertEvent,
    HeartRateSample,
    InvalidConfig,
    Rejected,
    SensorStatus,
    ZoneConfig,
    ZoneState,
)
from .zone_timer import TimeInZoneAccumulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneSnapshot:
    state: ZoneState
    bpm: Optional[int]
    zone_seconds: int
    total_seconds: int
    alert: Optional[AlertEvent]
    config: Optional[ZoneConfig]
    status: SensorStatus
    status_text: str


class ZoneMonitor(SampleSink, EventDispatcher):

    __events__ = ("on_reading", "on_alert", "on_status", "on_update")

    def __init__(self, settings, staleness_window=STALENESS_WINDOW,
                 debounce_interval=DEBOUNCE_INTERVAL, clock=time.time, **kwargs):
        EventDispatcher.__init__(self, **kwargs)
        self.settings = settings
        self.clock = clock
        self.ingest = SampleIngest(staleness_window)
        self.classifier = ZoneClassifier()
        self.tracker = TransitionTracker(debounce_interval)
        self.accumulator = TimeInZoneAccumulator()
        self.state = ZoneState.UNKNOWN
        self.sensor_status = SensorStatus.IDLE
        self.status_text = SensorStatus.IDLE.text
        self._config_error = None
        self._pending_alert = None
        self._last_tick = None
        self._tick_event = None

    # Default handlers required by EventDispatcher
    def on_reading(self, sample, state):
        pass

    def on_alert(self, alert):
        pass

    def on_status(self, status, text):
        pass

    def on_update(self, snapshot):
        pass

    # ---------- sample sink ----------
    def on_sample(self, bpm, timestamp):
        if bpm is None or int(bpm) <= 0:
            logger.debug("Dropping invalid reading: %r", bpm)
            return None
        sample = HeartRateSample(int(bpm), float(timestamp))
        if not sample.plausible:
            logger.warning("Implausible heart rate reading: %d bpm", sample.bpm)

        now = self.clock()
        result = self.ingest.ingest(sample, now)
        if isinstance(result, Rejected):
            return result

        self._update_state(sample.bpm, now)
        self.dispatch("on_reading", sample, self.state)
        return result

    def on_authorization_change(self, status):
        self.sensor_status = status
        if status.is_error:
            logger.warning("Sensor status: %s", status.text)
        self._publish_status(status.text)

    # ---------- ticking ----------
    def tick(self, now=None, elapsed=None):
        """
        Advance the session by one tick.

        Polls staleness, classifies, raises any alert, then accumulates
        time, in that order. The snapshot carries only the latest alert
        raised since the previous tick; every alert is still dispatched
        through ``on_alert`` when it happens.

        Args:
            now (float, optional): Current time, defaults to the monitor clock
            elapsed (float, optional): Seconds since the previous tick,
                defaults to the difference between tick times

        Returns:
            ZoneSnapshot: What the presentation layer should show
        """
        now = self.clock() if now is None else now
        if elapsed is None:
            elapsed = 0.0 if self._last_tick is None else now - self._last_tick
        self._last_tick = now

        bpm = self.ingest.current_bpm(now)
        config = self._update_state(bpm, now)
        self.accumulator.tick(self.state, elapsed)

        snapshot = ZoneSnapshot(
            state=self.state,
            bpm=bpm,
            zone_seconds=self.accumulator.zone_seconds,
            total_seconds=self.accumulator.total_seconds,
            alert=self._pending_alert,
            config=config,
            status=self.sensor_status,
            status_text=self.status_text,
        )
        self._pending_alert = None
        self.dispatch("on_update", snapshot)
        return snapshot

    def start(self, interval=1.0):
        if self._tick_event is not None:
            return
        self._last_tick = self.clock()
        self._tick_event = Clock.schedule_interval(self._on_clock, interval)

    def stop(self):
        if self._tick_event is not None:
            self._tick_event.cancel()
            self._tick_event = None

    def _on_clock(self, dt):
        # Kivy passes the real time since the last call
        self.tick(elapsed=dt)

    # ---------- session control ----------
    def new_session(self):
        self.ingest.reset()
        self.tracker.reset()
        self.accumulator.reset()
        self.state = ZoneState.UNKNOWN
        self._pending_alert = None
        self._last_tick = self.clock()
        logger.info("Started new session")

    def reset_counters(self):
        self.accumulator.reset()
        logger.info("Time in zone reset")

    # ---------- internals ----------
    def _current_config(self):
        try:
            config = self.settings.zone_config()
        except InvalidConfig as e:
            self._set_config_error(e)
            return None
        return config

    def _update_state(self, bpm, now):
        config = self._current_config()
        if config is None:
            state = ZoneState.UNKNOWN
        else:
            try:
                state = self.classifier.classify(bpm, config)
            except InvalidConfig as e:
                self._set_config_error(e)
                config = None
                state = ZoneState.UNKNOWN
            else:
                self._clear_config_error()

        if state != self.state:
            logger.debug("Zone state %s -> %s", self.state.name, state.name)
        self.state = state

        alert = self.tracker.observe(state, now)
        if alert is not None:
            self._pending_alert = alert
            self.dispatch("on_alert", alert)
        return config

    def _set_config_error(self, error):
        if self._config_error == str(error):
            return
        self._config_error = str(error)
        logger.error("Invalid zone configuration: %s", error)
        self._publish_status(f"Invalid zone settings: {error}")

    def _clear_config_error(self):
        if self._config_error is None:
            return
        self._config_error = None
        self._publish_status(self.sensor_status.text)

    def _publish_status(self, text):
        self.status_text = text
        self.dispatch("on_status", self.sensor_status, text)
