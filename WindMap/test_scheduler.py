"""Tests for the refresh scheduler."""
import threading
import pytest
from scheduler import RefreshScheduler


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_tasks_run_once_at_start(clock):
    scheduler = RefreshScheduler(clock=clock)
    calls = []
    scheduler.add_task("wind", lambda: calls.append("wind"), 600)
    scheduler.add_task("buoy", lambda: calls.append("buoy"), 600)

    assert scheduler.run_pending() == 2
    assert calls == ["wind", "buoy"]

    # Nothing due until the interval passes
    assert scheduler.run_pending() == 0


def test_tasks_repeat_on_interval(clock):
    scheduler = RefreshScheduler(clock=clock)
    task = scheduler.add_task("wind", lambda: None, 600)

    scheduler.run_pending()
    clock.now += 599
    scheduler.run_pending()
    assert task.run_count == 1

    clock.now += 1
    scheduler.run_pending()
    assert task.run_count == 2
    assert scheduler.seconds_until_next() == 600


def test_failing_task_does_not_stop_others(clock):
    scheduler = RefreshScheduler(clock=clock)
    calls = []

    def boom():
        raise RuntimeError("boom")

    failing = scheduler.add_task("wind", boom, 600)
    scheduler.add_task("buoy", lambda: calls.append("buoy"), 600)

    assert scheduler.run_pending() == 2
    assert calls == ["buoy"]
    assert failing.next_run == clock.now + 600


def test_invalid_interval(clock):
    with pytest.raises(ValueError):
        RefreshScheduler(clock=clock).add_task("wind", lambda: None, 0)


def test_seconds_until_next_without_tasks(clock):
    assert RefreshScheduler(clock=clock).seconds_until_next() is None


def test_run_forever_stops():
    """stop() from inside a task ends run_forever after the current pass."""
    scheduler = RefreshScheduler()
    calls = []

    def task():
        calls.append(1)
        scheduler.stop()

    scheduler.add_task("wind", task, 600)
    scheduler.add_task("buoy", lambda: calls.append(2), 600)

    worker = threading.Thread(target=scheduler.run_forever)
    worker.start()
    worker.join(timeout=5)

    assert not worker.is_alive()
    assert scheduler._stop_event.is_set()
    assert calls == [1]
