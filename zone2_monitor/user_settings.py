import logging

from kivy.storage.jsonstore import JsonStore

from .hr_controller import zone_from_age
from .zone_models import InvalidConfig, ZoneConfig

logger = logging.getLogger(__name__)

DEFAULT_AGE = 40
STORE_KEY = "user"


class UserSettings:
    """
    User profile and target range, persisted in a Kivy JsonStore.

    The zone range is only trusted when the user entered it; otherwise it
    is recomputed from age every time it is read.
    """

    def __init__(self, path):
        self.store = JsonStore(path)
        self.age = DEFAULT_AGE
        self.low = 0
        self.high = 0
        self.use_custom_range = False
        self.buffer = 0
        self.sound_enabled = True
        self.load()

    def load(self):
        if not self.store.exists(STORE_KEY):
            return
        data = self.store.get(STORE_KEY)
        try:
            age = int(data.get("age", DEFAULT_AGE))
            low = int(data.get("low", 0))
            high = int(data.get("high", 0))
            buffer = int(data.get("buffer", 0))
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable settings in %s: %s", self.store.filename, e)
            return
        self.age = age
        self.low = low
        self.high = high
        self.buffer = buffer
        self.use_custom_range = bool(data.get("use_custom_range", False))
        self.sound_enabled = bool(data.get("sound_enabled", True))

    def persist(self):
        self.store.put(
            STORE_KEY,
            age=self.age,
            low=self.low,
            high=self.high,
            use_custom_range=self.use_custom_range,
            buffer=self.buffer,
            sound_enabled=self.sound_enabled,
        )

    def estimate(self, age=None):
        return zone_from_age(self.age if age is None else age, buffer=self.buffer)

    def zone_config(self):
        """
        Current target range.

        Returns:
            ZoneConfig: Custom range when one was entered, else the age estimate

        Raises:
            InvalidConfig: If the stored values cannot produce a usable range
        """
        if not self.use_custom_range:
            return self.estimate()
        if self.low >= self.high:
            raise InvalidConfig(f"Zone low ({self.low}) must be below zone high ({self.high})")
        return ZoneConfig(self.low, self.high, self.buffer)

    def save(self, age, low, high, buffer=None):
        """
        Store a profile edit.

        The range is marked custom only when it differs from the estimate
        for the given age.

        Raises:
            InvalidConfig: If the age or range is invalid; nothing is stored
        """
        estimate = zone_from_age(age)
        low, high = int(low), int(high)
        if low >= high:
            raise InvalidConfig(f"Zone low ({low}) must be below zone high ({high})")
        if buffer is not None:
            if int(buffer) < 0:
                raise InvalidConfig(f"Zone buffer must not be negative, got {buffer}")
            self.buffer = int(buffer)

        self.age = int(age)
        self.low = low
        self.high = high
        self.use_custom_range = (low, high) != (estimate.low, estimate.high)
        self.persist()
        logger.info("Saved settings: age=%d zone=%d-%d custom=%s",
                    self.age, self.low, self.high, self.use_custom_range)
        return self.zone_config()

    def reset_to_estimate(self, age=None):
        if age is not None:
            zone_from_age(age)
            self.age = int(age)
        estimate = self.estimate()
        self.low = estimate.low
        self.high = estimate.high
        self.use_custom_range = False
        self.persist()
        return estimate

    def set_sound_enabled(self, enabled):
        self.sound_enabled = bool(enabled)
        self.persist()
