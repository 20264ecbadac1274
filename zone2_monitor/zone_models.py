"""
Shared types for the Zone 2 monitor core.

Timestamps are POSIX seconds (``time.time()``) and durations are seconds,
both as floats.
"""

from dataclasses import dataclass
from enum import Enum

# Seconds after which the last reading is no longer trusted as current
STALENESS_WINDOW = 10.0
# Seconds during which a new zone-exit alert is suppressed after one fires
DEBOUNCE_INTERVAL = 4.0
# Nominal accumulator tick
TICK_INTERVAL = 1.0

# Plausible bpm range; readings outside it are forwarded but logged
MIN_PLAUSIBLE_BPM = 30
MAX_PLAUSIBLE_BPM = 230


class Zone2Error(Exception):
    """Base class for errors raised by the monitor."""


class InvalidConfig(Zone2Error, ValueError):
    """Zone boundaries or settings that cannot be used for classification."""


class SensorError(Zone2Error):
    """Raised inside a sample source; converted to a SensorStatus at its boundary."""

    status = None


class AuthorizationDenied(SensorError):
    pass


class DeviceUnavailable(SensorError):
    pass


class ZoneState(Enum):
    UNKNOWN = "unknown"
    BELOW = "below"
    IN_ZONE = "in_zone"
    ABOVE = "above"

    @property
    def counts_as_zone(self):
        """True for states that accrue time in zone."""
        return self in (ZoneState.IN_ZONE, ZoneState.ABOVE)


class AlertEvent(Enum):
    LEFT_ZONE_BELOW = "left_zone_below"
    LEFT_ZONE_ABOVE = "left_zone_above"

    @property
    def message(self):
        if self is AlertEvent.LEFT_ZONE_BELOW:
            return "Pick it up! Below Zone 2"
        return "Slow down! Above Zone 2"


class RejectReason(Enum):
    DUPLICATE = "duplicate"
    OUT_OF_ORDER = "out_of_order"
    STALE = "stale"


class SensorStatus(Enum):
    IDLE = "Not connected"
    SCANNING = "Searching for heart rate monitor..."
    CONNECTING = "Connecting..."
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    AUTHORIZATION_DENIED = "Bluetooth permission denied"
    DEVICE_UNAVAILABLE = "Heart rate monitor unavailable"
    POWERED_OFF = "Bluetooth is turned off"

    @property
    def text(self):
        return self.value

    @property
    def is_error(self):
        return self in (
            SensorStatus.AUTHORIZATION_DENIED,
            SensorStatus.DEVICE_UNAVAILABLE,
            SensorStatus.POWERED_OFF,
        )


AuthorizationDenied.status = SensorStatus.AUTHORIZATION_DENIED
DeviceUnavailable.status = SensorStatus.DEVICE_UNAVAILABLE


@dataclass(frozen=True)
class HeartRateSample:
    bpm: int
    timestamp: float

    @property
    def plausible(self):
        return MIN_PLAUSIBLE_BPM <= self.bpm <= MAX_PLAUSIBLE_BPM


@dataclass(frozen=True)
class ZoneConfig:
    """
    Inclusive target range in bpm.

    ``buffer`` widens the zone on both sides; 0 keeps the boundaries exact.
    """
    low: int
    high: int
    buffer: int = 0

    @property
    def effective_low(self):
        return self.low - self.buffer

    @property
    def effective_high(self):
        return self.high + self.buffer

    def describe(self):
        return f"{self.low} - {self.high}"


@dataclass(frozen=True)
class Rejected:
    sample: HeartRateSample
    reason: RejectReason
