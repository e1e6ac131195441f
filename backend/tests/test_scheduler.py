import logging
import threading

from quizgame.services.games.scheduler import TimerRegistry


def test_arm_replaces_pending_timer(clock, timers):
    fired = []
    first = timers.arm(7, 5, lambda h: fired.append('first'))
    second = timers.arm(7, 8, lambda h: fired.append('second'))

    assert first.cancelled
    assert timers.get(7) is second
    assert len(timers) == 1

    clock.advance(10)
    assert fired == ['second']


def test_cancel_is_idempotent(clock, timers):
    fired = []
    timers.arm(3, 2, lambda h: fired.append(h))

    assert timers.cancel(3) is True
    assert timers.cancel(3) is False
    assert timers.cancel(99) is False

    clock.advance(5)
    assert fired == []
    assert 3 not in timers


def test_cancel_all_stops_every_session(clock, timers):
    fired = []
    for session_id in (1, 2, 3):
        timers.arm(session_id, 1, lambda h: fired.append(h.session_id))

    assert timers.cancel_all() == 3
    assert len(timers) == 0
    clock.advance(5)
    assert fired == []


def test_handle_fires_only_once(timers):
    calls = []
    handle = timers.arm(1, 0, lambda h: calls.append(h))

    assert handle.fire() is True
    assert handle.fire() is False
    assert calls == [handle]
    assert handle.fired


def test_cancelled_handle_does_not_run():
    calls = []
    registry = TimerRegistry(spawn=lambda handle: None)
    handle = registry.arm(1, 0, lambda h: calls.append(h))
    registry.cancel(1)

    handle.run()
    assert calls == []


def test_run_waits_then_fires():
    calls = []
    registry = TimerRegistry(spawn=lambda handle: None)
    handle = registry.arm(1, 0, lambda h: calls.append(h))

    handle.run()
    assert calls == [handle]


def test_discard_keeps_newer_handle(timers):
    old = timers.arm(1, 5, lambda h: None)
    new = timers.arm(1, 5, lambda h: None)

    timers.discard(old)
    assert timers.get(1) is new
    assert not timers.is_current(old)

    timers.discard(new)
    assert timers.get(1) is None


def test_callback_errors_are_logged_not_raised(timers, caplog):
    def boom(handle):
        raise RuntimeError('boom')

    handle = timers.arm(4, 0, boom)
    with caplog.at_level(logging.ERROR):
        assert handle.fire() is True
    assert any('[timer-error]' in r.getMessage() for r in caplog.records)


def test_default_spawn_runs_on_background_thread():
    done = threading.Event()
    registry = TimerRegistry()
    registry.arm(1, 0.01, lambda h: done.set())

    assert done.wait(timeout=2)


def test_heartbeat_worker_still_fires():
    done = threading.Event()
    registry = TimerRegistry(heartbeat=0.01)
    registry.arm(1, 0.03, lambda h: done.set())

    assert done.wait(timeout=2)
