"""Background repeating callbacks."""
import threading
import time

import pytest

from exam_session.scheduling import RepeatingTimer


def test_calls_repeatedly_until_cancelled():
    calls = []
    reached = threading.Event()

    def callback():
        calls.append(time.monotonic())
        if len(calls) >= 3:
            reached.set()

    source = RepeatingTimer(0.01, callback, "test-source")
    source.start()
    assert reached.wait(2)
    source.cancel()
    assert source.cancelled
    assert not source.is_alive
    count = len(calls)
    time.sleep(0.05)
    assert len(calls) == count


def test_callback_errors_do_not_stop_the_loop():
    calls = []
    reached = threading.Event()

    def callback():
        calls.append(1)
        if len(calls) >= 2:
            reached.set()
        raise RuntimeError("boom")

    source = RepeatingTimer(0.01, callback, "failing-source")
    source.start()
    assert reached.wait(2)
    source.cancel()


def test_cancel_is_idempotent_and_safe_before_start():
    source = RepeatingTimer(10, lambda: None)
    source.cancel()
    source.cancel()
    assert source.cancelled
    assert not source.is_alive


def test_cancel_from_inside_the_callback():
    done = threading.Event()
    holder = {}

    def callback():
        holder["source"].cancel()
        done.set()

    holder["source"] = RepeatingTimer(0.01, callback)
    holder["source"].start()
    assert done.wait(2)
    deadline = time.monotonic() + 2
    while holder["source"].is_alive and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not holder["source"].is_alive


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        RepeatingTimer(0, lambda: None)
