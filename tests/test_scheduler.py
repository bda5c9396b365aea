import pytest

from tetris_engine.game import ManualScheduler


def test_fires_once_per_elapsed_interval(scheduler):
    calls = []
    scheduler.schedule(100, lambda: calls.append(scheduler.now_ms))
    assert scheduler.advance(99) == 0
    assert scheduler.advance(1) == 1
    assert scheduler.advance(250) == 2
    assert len(calls) == 3
    assert scheduler.active_count == 1


def test_cancel_stops_callbacks(scheduler):
    calls = []
    handle = scheduler.schedule(10, lambda: calls.append(1))
    scheduler.cancel(handle)
    scheduler.cancel(handle)
    assert scheduler.advance(100) == 0
    assert calls == []
    assert scheduler.active_count == 0


def test_callback_can_cancel_itself_mid_burst(scheduler):
    calls = []
    holder = {}

    def cb():
        calls.append(1)
        scheduler.cancel(holder["h"])

    holder["h"] = scheduler.schedule(10, cb)
    assert scheduler.advance(100) == 1
    assert calls == [1]


def test_rescheduled_handle_starts_on_next_advance(scheduler):
    calls = []
    holder = {}

    def cb():
        calls.append("old")
        scheduler.cancel(holder["h"])
        holder["h"] = scheduler.schedule(50, lambda: calls.append("new"))

    holder["h"] = scheduler.schedule(10, cb)
    scheduler.advance(30)
    assert calls == ["old"]
    assert scheduler.active_count == 1
    scheduler.advance(50)
    assert calls == ["old", "new"]


def test_rejects_bad_arguments():
    s = ManualScheduler()
    with pytest.raises(ValueError):
        s.schedule(0, lambda: None)
    with pytest.raises(ValueError):
        s.advance(-1)


def test_cancel_all(scheduler):
    scheduler.schedule(10, lambda: None)
    scheduler.schedule(20, lambda: None)
    scheduler.cancel_all()
    assert scheduler.active_count == 0
