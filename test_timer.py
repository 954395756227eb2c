"""Countdown state machine."""
from datetime import timedelta

from conftest import T0
from exam_session.timer import ExamTimer, TimerState, Urgency, format_clock, remaining_seconds, urgency_for


def test_remaining_is_floored_and_never_negative():
    assert remaining_seconds(T0, 60, T0) == 3600
    assert remaining_seconds(T0, 60, T0 + timedelta(seconds=1.2)) == 3598
    assert remaining_seconds(T0, 60, T0 + timedelta(seconds=3599.5)) == 0
    assert remaining_seconds(T0, 60, T0 + timedelta(hours=5)) == 0


def test_expiry_fires_exactly_once():
    timer = ExamTimer(T0, 60)
    timer.start()
    assert timer.state == TimerState.RUNNING
    assert not timer.tick(T0 + timedelta(seconds=3000))
    assert timer.remaining == 600
    assert timer.tick(T0 + timedelta(seconds=3601))
    assert timer.state == TimerState.EXPIRED
    assert timer.remaining == 0
    assert not timer.tick(T0 + timedelta(seconds=3602))
    assert not timer.tick(T0 + timedelta(seconds=9999))


def test_remaining_is_non_increasing_even_if_the_clock_steps_back():
    timer = ExamTimer(T0, 30)
    timer.start()
    seen = []
    for offset in (0, 5, 10, 7, 3, 20, 19, 1800):
        timer.tick(T0 + timedelta(seconds=offset))
        seen.append(timer.remaining)
    assert seen == sorted(seen, reverse=True)
    assert seen[-1] == 0


def test_practice_timer_stays_inactive():
    timer = ExamTimer(T0, None)
    timer.start()
    assert timer.state == TimerState.INACTIVE
    assert not timer.tick(T0 + timedelta(days=3))
    assert timer.remaining is None
    assert timer.urgency is None
    assert timer.remaining_at(T0) is None


def test_stopped_timer_ignores_ticks():
    timer = ExamTimer(T0, 60)
    timer.start()
    timer.stop()
    assert not timer.tick(T0 + timedelta(hours=2))
    assert timer.state == TimerState.RUNNING
    assert timer.remaining is None


def test_urgency_tiers():
    assert urgency_for(1801, 3600) == Urgency.LOW
    assert urgency_for(1800, 3600) == Urgency.MEDIUM
    assert urgency_for(901, 3600) == Urgency.MEDIUM
    assert urgency_for(900, 3600) == Urgency.HIGH
    assert urgency_for(361, 3600) == Urgency.HIGH
    assert urgency_for(360, 3600) == Urgency.CRITICAL
    assert urgency_for(0, 3600) == Urgency.CRITICAL


def test_format_clock():
    assert format_clock(3600) == "60:00"
    assert format_clock(65) == "1:05"
    assert format_clock(0) == "0:00"
