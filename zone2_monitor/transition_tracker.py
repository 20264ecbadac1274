import logging

from .zone_models import DEBOUNCE_INTERVAL, AlertEvent, ZoneState

logger = logging.getLogger(__name__)

# Only leaving the target zone is alert-worthy
_ALERTS = {
    (ZoneState.IN_ZONE, ZoneState.BELOW): AlertEvent.LEFT_ZONE_BELOW,
    (ZoneState.IN_ZONE, ZoneState.ABOVE): AlertEvent.LEFT_ZONE_ABOVE,
}


class TransitionTracker:
    """
    Turns a stream of zone states into debounced zone-exit alerts.

    After an alert fires, further transitions within ``debounce_interval``
    seconds are recorded but stay silent so noise at a boundary does not
    produce a burst of alerts.
    """

    def __init__(self, debounce_interval=DEBOUNCE_INTERVAL):
        if debounce_interval < 0:
            raise ValueError(f"Debounce interval must not be negative, got {debounce_interval}")
        self.debounce_interval = float(debounce_interval)
        self._last_state = ZoneState.UNKNOWN
        self._debounce_until = None

    @property
    def last_emitted_state(self):
        return self._last_state

    @property
    def debounce_until(self):
        return self._debounce_until

    def observe(self, new_state, now):
        """
        Record the current zone state.

        Args:
            new_state (ZoneState): Latest classification
            now (float): Current time

        Returns:
            AlertEvent or None: The alert to raise for this transition, if any
        """
        previous = self._last_state
        if new_state == previous:
            return None

        self._last_state = new_state

        if self._debounce_until is not None and now < self._debounce_until:
            logger.debug("Suppressed %s -> %s during debounce", previous.name, new_state.name)
            return None

        alert = _ALERTS.get((previous, new_state))
        if alert is not None:
            self._debounce_until = now + self.debounce_interval
            logger.info("Zone alert: %s", alert.name)
        return alert

    def reset(self):
        self._last_state = ZoneState.UNKNOWN
        self._debounce_until = None
