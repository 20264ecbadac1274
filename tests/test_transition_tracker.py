from zone2_monitor.transition_tracker import TransitionTracker
from zone2_monitor.zone_models import AlertEvent, ZoneState

U, B, Z, A = ZoneState.UNKNOWN, ZoneState.BELOW, ZoneState.IN_ZONE, ZoneState.ABOVE


def feed(tracker, states):
    return [tracker.observe(state, now) for now, state in states]


def test_initial_state():
    tracker = TransitionTracker()
    assert tracker.last_emitted_state == U
    assert tracker.debounce_until is None


def test_leaving_zone_raises_alerts():
    tracker = TransitionTracker(debounce_interval=4)
    assert feed(tracker, [(0, Z), (1, A)]) == [None, AlertEvent.LEFT_ZONE_ABOVE]
    tracker = TransitionTracker(debounce_interval=4)
    assert feed(tracker, [(0, Z), (1, B)]) == [None, AlertEvent.LEFT_ZONE_BELOW]
    assert tracker.debounce_until == 5


def test_repeated_state_alerts_once():
    tracker = TransitionTracker()
    alerts = feed(tracker, [(0, Z), (1, A), (2, A), (10, A), (20, A)])
    assert [a for a in alerts if a] == [AlertEvent.LEFT_ZONE_ABOVE]


def test_entering_zone_never_alerts():
    for source in (U, B, A):
        tracker = TransitionTracker()
        tracker.observe(source, 0)
        assert tracker.observe(Z, 100) is None


def test_unknown_transitions_are_silent():
    tracker = TransitionTracker()
    assert feed(tracker, [(0, Z), (1, U), (2, A), (3, U), (4, B)]) == [None] * 5


def test_direct_swing_is_silent():
    tracker = TransitionTracker()
    assert feed(tracker, [(0, B), (1, A), (2, B)]) == [None, None, None]


def test_debounce_suppresses_chatter():
    tracker = TransitionTracker(debounce_interval=4)
    alerts = feed(tracker, [(0, Z), (1, A), (2, Z), (3, A)])
    assert [a for a in alerts if a] == [AlertEvent.LEFT_ZONE_ABOVE]
    # Suppressed transitions are still recorded
    assert tracker.last_emitted_state == A


def test_alerts_resume_after_debounce():
    tracker = TransitionTracker(debounce_interval=4)
    alerts = feed(tracker, [(0, Z), (1, A), (2, Z), (6, A)])
    assert alerts == [None, AlertEvent.LEFT_ZONE_ABOVE, None, AlertEvent.LEFT_ZONE_ABOVE]


def test_state_changed_during_debounce_does_not_alert_later():
    tracker = TransitionTracker(debounce_interval=4)
    feed(tracker, [(0, Z), (1, A), (2, Z), (3, B)])
    assert tracker.observe(B, 10) is None


def test_reset():
    tracker = TransitionTracker()
    feed(tracker, [(0, Z), (1, A)])
    tracker.reset()
    assert tracker.last_emitted_state == U
    assert tracker.debounce_until is None
