from datetime import datetime, timedelta, timezone

from examgate.client.clock import SessionClock, remaining_seconds

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


class FakeNow:
    def __init__(self, at=T0):
        self.at = at

    def __call__(self):
        return self.at

    def advance(self, **kwargs):
        self.at += timedelta(**kwargs)


def test_remaining_is_derived_from_start_after_reload():
    now = FakeNow()
    clock = SessionClock(T0, 30, now=now)
    assert clock.remaining() == 1800

    now.advance(minutes=10)
    # a reload builds a new clock from the same persisted start
    reloaded = SessionClock(T0, 30, now=now)
    assert abs(reloaded.remaining() - 1200) <= 2


def test_remaining_seconds_is_total():
    assert remaining_seconds(T0, None, 30) == 1800
    assert remaining_seconds(T0 + timedelta(hours=2), T0, 30) == 0
    # a start in the future counts as no time used
    assert remaining_seconds(T0, T0 + timedelta(minutes=5), 30) == 1800
    assert remaining_seconds(T0, T0, 0) == 0
    # naive timestamps are read as UTC
    assert remaining_seconds(T0.replace(tzinfo=None) + timedelta(seconds=90), T0, 30) == 1710


def test_expiry_fires_on_exactly_one_tick():
    now = FakeNow()
    clock = SessionClock(T0, 1, now=now)

    now.advance(seconds=59)
    assert clock.tick().expired is False

    now.advance(seconds=1)
    tick = clock.tick()
    assert tick.remaining == 0
    assert tick.expired is True
    assert clock.expiry_fired is True

    now.advance(seconds=5)
    assert clock.tick().expired is False


def test_throttled_tab_is_corrected_on_next_tick():
    now = FakeNow()
    clock = SessionClock(T0, 30, now=now)
    assert clock.tick().corrected is False

    now.advance(seconds=1)
    assert clock.tick().corrected is False

    # the tab was suspended for a minute
    now.advance(seconds=60)
    tick = clock.tick()
    assert tick.corrected is True
    assert tick.remaining == 1800 - 61


def test_wall_clock_stepping_back_does_not_add_time():
    now = FakeNow()
    clock = SessionClock(T0, 30, now=now)
    now.advance(minutes=5)
    assert clock.tick().remaining == 1500

    now.advance(minutes=-3)
    assert clock.tick().remaining == 1500
    assert clock.remaining() == 1500


def test_elapsed_minutes():
    now = FakeNow()
    clock = SessionClock(T0, 30, now=now)
    now.advance(minutes=12, seconds=30)
    assert clock.elapsed_minutes() == 12.5
