from conftest import FakeClock, FakeSettings

from zone2_monitor.zone_models import AlertEvent, Rejected, SensorStatus, ZoneState
from zone2_monitor.zone_monitor import ZoneMonitor


def make_monitor(settings=None, clock=None, **kwargs):
    clock = clock or FakeClock()
    monitor = ZoneMonitor(settings or FakeSettings(), clock=clock, **kwargs)
    events = {"alerts": [], "readings": [], "statuses": [], "updates": []}
    monitor.bind(
        on_alert=lambda _, alert: events["alerts"].append(alert),
        on_reading=lambda _, sample, state: events["readings"].append((sample.bpm, state)),
        on_status=lambda _, status, text: events["statuses"].append((status, text)),
        on_update=lambda _, snapshot: events["updates"].append(snapshot),
    )
    return monitor, clock, events


def test_bpm_sequence_classifies_and_alerts_once():
    monitor, clock, events = make_monitor(FakeSettings(100, 140))
    for t, bpm in enumerate([90, 105, 150, 120], start=1):
        clock.now = float(t)
        monitor.on_sample(bpm, clock.now)

    assert [state for _, state in events["readings"]] == [
        ZoneState.BELOW, ZoneState.IN_ZONE, ZoneState.ABOVE, ZoneState.IN_ZONE,
    ]
    assert events["alerts"] == [AlertEvent.LEFT_ZONE_ABOVE]


def test_out_of_order_sample_does_not_change_state():
    monitor, clock, events = make_monitor(FakeSettings(100, 140))
    clock.now = 5.0
    monitor.on_sample(120, 5.0)
    result = monitor.on_sample(160, 3.0)

    assert isinstance(result, Rejected)
    assert monitor.state == ZoneState.IN_ZONE
    assert len(events["readings"]) == 1
    assert events["alerts"] == []


def test_ticks_accumulate_time_in_zone():
    monitor, clock, _ = make_monitor(FakeSettings(100, 140))
    for t in range(10):
        clock.now = float(t)
        monitor.on_sample(120 if t < 4 else 90, clock.now)
        snapshot = monitor.tick(elapsed=1.0)

    assert snapshot.zone_seconds == 4
    assert snapshot.total_seconds == 10
    assert snapshot.state == ZoneState.BELOW


def test_stale_signal_reverts_to_unknown():
    monitor, clock, events = make_monitor(FakeSettings(100, 140), staleness_window=10)
    monitor.on_sample(120, 0.0)

    assert monitor.tick(now=5.0, elapsed=5.0).state == ZoneState.IN_ZONE
    snapshot = monitor.tick(now=11.0, elapsed=6.0)
    assert snapshot.state == ZoneState.UNKNOWN
    assert snapshot.bpm is None
    # Time while unknown is not counted
    assert snapshot.total_seconds == 5
    assert events["alerts"] == []


def test_snapshot_carries_pending_alert_once():
    monitor, clock, events = make_monitor(FakeSettings(100, 140))
    monitor.on_sample(120, 0.0)
    clock.now = 1.0
    monitor.on_sample(150, 1.0)

    first = monitor.tick(now=1.5, elapsed=1.0)
    second = monitor.tick(now=2.5, elapsed=1.0)
    assert first.alert == AlertEvent.LEFT_ZONE_ABOVE
    assert second.alert is None
    assert events["alerts"] == [AlertEvent.LEFT_ZONE_ABOVE]
    assert events["updates"] == [first, second]


def test_invalid_readings_are_dropped():
    monitor, _, events = make_monitor()
    assert monitor.on_sample(0, 0.0) is None
    assert monitor.ingest.last_sample is None
    assert events["readings"] == []


def test_implausible_reading_is_still_forwarded():
    monitor, _, events = make_monitor()
    monitor.on_sample(250, 0.0)
    assert events["readings"] == [(250, ZoneState.ABOVE)]


def test_settings_change_applies_on_next_tick():
    settings = FakeSettings(100, 140)
    monitor, _, _ = make_monitor(settings)
    monitor.on_sample(120, 0.0)
    assert monitor.tick(now=1.0).state == ZoneState.IN_ZONE

    settings.config = type(settings.config)(100, 110)
    assert monitor.tick(now=2.0).state == ZoneState.ABOVE


def test_invalid_config_degrades_to_unknown():
    settings = FakeSettings()
    settings.error = "Zone low (150) must be below zone high (140)"
    monitor, _, events = make_monitor(settings)
    monitor.on_sample(120, 0.0)

    snapshot = monitor.tick(now=1.0, elapsed=1.0)
    assert snapshot.state == ZoneState.UNKNOWN
    assert snapshot.config is None
    assert "Invalid zone settings" in snapshot.status_text
    assert snapshot.total_seconds == 0

    settings.error = None
    assert monitor.tick(now=2.0, elapsed=1.0).state == ZoneState.IN_ZONE
    assert events["statuses"][-1] == (SensorStatus.IDLE, SensorStatus.IDLE.text)


def test_sensor_status_is_published():
    monitor, _, events = make_monitor()
    monitor.on_authorization_change(SensorStatus.AUTHORIZATION_DENIED)

    assert events["statuses"] == [(SensorStatus.AUTHORIZATION_DENIED, "Bluetooth permission denied")]
    assert monitor.tick(now=1.0).status == SensorStatus.AUTHORIZATION_DENIED


def test_reset_counters_keeps_tracker_state():
    monitor, clock, _ = make_monitor()
    monitor.on_sample(120, 0.0)
    monitor.tick(now=0.5, elapsed=30)
    monitor.reset_counters()

    assert monitor.accumulator.total_seconds == 0
    assert monitor.tracker.last_emitted_state == ZoneState.IN_ZONE


def test_new_session_resets_everything():
    monitor, clock, _ = make_monitor()
    monitor.on_sample(120, 0.0)
    monitor.tick(now=0.5, elapsed=30)
    monitor.new_session()

    assert monitor.state == ZoneState.UNKNOWN
    assert monitor.ingest.last_sample is None
    assert monitor.tracker.last_emitted_state == ZoneState.UNKNOWN
    assert monitor.accumulator.zone_seconds == 0


def test_elapsed_defaults_to_time_between_ticks():
    monitor, _, _ = make_monitor()
    monitor.on_sample(120, 0.0)
    monitor.tick(now=0.0)
    snapshot = monitor.tick(now=3.0)
    assert snapshot.total_seconds == 3


def test_fractional_reading_below_one_is_dropped():
    monitor, clock, events = make_monitor()
    assert monitor.on_sample(0.4, 0.0) is None
    assert monitor.ingest.last_sample is None
    assert events["readings"] == []


def test_snapshot_keeps_latest_alert_when_several_fire_between_ticks():
    monitor, clock, events = make_monitor(FakeSettings(100, 140), debounce_interval=0)
    for t, bpm in enumerate([120, 150, 120, 90]):
        clock.now = float(t)
        monitor.on_sample(bpm, clock.now)
    snapshot = monitor.tick()

    assert events["alerts"] == [AlertEvent.LEFT_ZONE_ABOVE, AlertEvent.LEFT_ZONE_BELOW]
    assert snapshot.alert == AlertEvent.LEFT_ZONE_BELOW
    assert monitor.tick().alert is None
