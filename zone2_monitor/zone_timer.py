import logging

from .zone_models import ZoneState

logger = logging.getLogger(__name__)


class TimeInZoneAccumulator:
    """
    Accumulates time spent with a valid reading and time spent at or above
    the target zone.

    Elapsed time is summed at full precision and reported in whole seconds,
    so fractional or late ticks do not drift.
    """

    def __init__(self):
        self._zone_elapsed = 0.0
        self._total_elapsed = 0.0

    @property
    def zone_seconds(self):
        return int(self._zone_elapsed)

    @property
    def total_seconds(self):
        return int(self._total_elapsed)

    def tick(self, current_state, elapsed):
        """
        Add the time since the previous tick.

        Args:
            current_state (ZoneState): State classified for this tick
            elapsed (float): Real seconds since the previous tick
        """
        if elapsed < 0:
            logger.warning("Ignoring negative tick interval: %.3f s", elapsed)
            return
        if current_state == ZoneState.UNKNOWN:
            return

        self._total_elapsed += elapsed
        if current_state.counts_as_zone:
            self._zone_elapsed += elapsed

    def reset(self):
        self._zone_elapsed = 0.0
        self._total_elapsed = 0.0


def format_duration(seconds):
    """Format seconds as MM:SS, or H:MM:SS from one hour."""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
