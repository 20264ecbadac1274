import logging

from .zone_models import STALENESS_WINDOW, HeartRateSample, Rejected, RejectReason

logger = logging.getLogger(__name__)


class SampleIngest:
    """
    Filters incoming heart rate samples before they reach the classifier.

    Only the last accepted sample is kept. A sample is dropped when its
    timestamp does not advance past that sample, or when it is already older
    than the staleness window at the time it arrives.
    """

    def __init__(self, staleness_window=STALENESS_WINDOW):
        if staleness_window <= 0:
            raise ValueError(f"Staleness window must be positive, got {staleness_window}")
        self.staleness_window = float(staleness_window)
        self._last = None

    @property
    def last_sample(self):
        return self._last

    def ingest(self, sample, now):
        """
        Accept or reject a sample.

        Args:
            sample (HeartRateSample): Reading with the time it was recorded
            now (float): Current time

        Returns:
            HeartRateSample or Rejected: The accepted sample, or the reason it
            was dropped
        """
        if self._last is not None:
            if sample.timestamp == self._last.timestamp:
                return self._reject(sample, RejectReason.DUPLICATE)
            if sample.timestamp < self._last.timestamp:
                return self._reject(sample, RejectReason.OUT_OF_ORDER)
        if sample.timestamp < now - self.staleness_window:
            return self._reject(sample, RejectReason.STALE)

        self._last = sample
        return sample

    def ingest_reading(self, bpm, timestamp, now):
        return self.ingest(HeartRateSample(int(bpm), float(timestamp)), now)

    def check_staleness(self, now):
        """True when there is no accepted sample or it is older than the window."""
        if self._last is None:
            return True
        return now - self._last.timestamp > self.staleness_window

    def current_bpm(self, now):
        """Latest accepted bpm, or None once the signal has gone stale."""
        if self.check_staleness(now):
            return None
        return self._last.bpm

    def reset(self):
        self._last = None

    def _reject(self, sample, reason):
        logger.debug("Rejected %s sample: %d bpm at %.3f", reason.value, sample.bpm, sample.timestamp)
        return Rejected(sample, reason)
