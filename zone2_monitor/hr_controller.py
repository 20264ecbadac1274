from .zone_models import InvalidConfig, ZoneConfig, ZoneState

MIN_AGE = 1
MAX_AGE = 119


def _percent_of(value, percent):
    # Integer half-up rounding so 0.7 * 175 gives 123, not float-rounded 122
    return (value * percent + 50) // 100


def zone_from_age(age, buffer=0):
    """
    Estimate the Zone 2 range from age.

    Max HR is estimated as 220 - age and the zone spans 60-70% of it.

    Args:
        age (int): User's age in years
        buffer (int, optional): Hysteresis buffer carried into the config

    Returns:
        ZoneConfig: Estimated target range

    Raises:
        InvalidConfig: If the age is outside a usable range
    """
    try:
        age = int(age)
    except (TypeError, ValueError):
        raise InvalidConfig(f"Age must be a whole number, got {age!r}")
    if not MIN_AGE <= age <= MAX_AGE:
        raise InvalidConfig(f"Age must be between {MIN_AGE} and {MAX_AGE}, got {age}")

    max_hr = 220 - age
    return ZoneConfig(
        low=_percent_of(max_hr, 60),
        high=_percent_of(max_hr, 70),
        buffer=buffer,
    )


class ZoneClassifier:
    """
    Maps a heart rate value onto a ZoneState.

    Holds no state: the current ZoneConfig is passed on every call so a
    settings change takes effect on the next classification.
    """

    def classify(self, bpm, config):
        """
        Determine the zone state for a heart rate value.

        Args:
            bpm (int or None): Validated heart rate, or None when there is no
                current reading
            config (ZoneConfig): Target range to classify against

        Returns:
            ZoneState: UNKNOWN for None, otherwise BELOW, IN_ZONE or ABOVE.
            Both boundaries count as IN_ZONE.

        Raises:
            InvalidConfig: If config.low is greater than config.high
        """
        if config.low > config.high:
            raise InvalidConfig(f"Zone low ({config.low}) is above zone high ({config.high})")
        if config.buffer < 0:
            raise InvalidConfig(f"Zone buffer must not be negative, got {config.buffer}")

        if bpm is None:
            return ZoneState.UNKNOWN
        if bpm < config.effective_low:
            return ZoneState.BELOW
        elif bpm > config.effective_high:
            return ZoneState.ABOVE
        else:
            return ZoneState.IN_ZONE


def classify(bpm, config):
    """Module-level shortcut for ZoneClassifier().classify."""
    return _classifier.classify(bpm, config)


_classifier = ZoneClassifier()
