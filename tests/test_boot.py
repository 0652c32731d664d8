import asyncio
import random

import pytest

from bootblog.boot import (
    DEFAULT_LINES,
    DEFAULT_LOGS,
    BootScript,
    BootSequencer,
    BootState,
)
from bootblog.protocols import Scheduler, TimerHandle


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records timers instead of waiting; tests fire them by hand."""

    def __init__(self):
        self.timers = []

    def call_later(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self):
        pending = self.pending()
        assert len(pending) == 1
        timer = pending[0]
        timer.fired = True
        timer.callback()
        return timer


def script(lines=("one", "two", "three"), **kwargs):
    options = {"logs": ("log-a", "log-b"), "min_delay": 0.1, "max_delay": 0.1}
    options.update(kwargs)
    return BootScript(lines=tuple(lines), **options)


def test_fake_scheduler_satisfies_protocols():
    scheduler = FakeScheduler()
    assert isinstance(scheduler, Scheduler)
    assert isinstance(scheduler.call_later(0, lambda: None), TimerHandle)


def test_default_script_matches_terminal_boot():
    boot = BootScript()
    assert boot.lines == DEFAULT_LINES
    assert boot.lines[0] == "Found 0x55aa..."
    assert boot.lines[-1] == "Boot complete!"
    assert boot.logs == DEFAULT_LOGS
    assert boot.log_window == 3


def test_sequence_runs_n_intervals_then_completes():
    scheduler = FakeScheduler()
    shown = []
    completed = []
    sequencer = BootSequencer(
        script(),
        scheduler,
        on_line=lambda index, line: shown.append((index, line)),
        on_complete=lambda: completed.append(True),
    )
    assert sequencer.state is BootState.IDLE

    sequencer.mount()
    assert sequencer.state is BootState.PLAYING
    assert sequencer.current_line == "one"

    for _ in range(3):
        assert len(scheduler.pending()) == 1
        scheduler.advance()

    assert sequencer.state is BootState.COMPLETE
    assert shown == [(0, "one"), (1, "two"), (2, "three")]
    assert completed == [True]
    assert len(scheduler.timers) == 3
    assert scheduler.pending() == []
    assert not sequencer.pending
    assert sequencer.current_line is None


def test_final_line_uses_final_delay():
    scheduler = FakeScheduler()
    sequencer = BootSequencer(script(final_delay=2.0), scheduler)
    sequencer.mount()
    for _ in range(3):
        scheduler.advance()
    assert [t.delay for t in scheduler.timers] == [0.1, 0.1, 2.0]


def test_final_delay_none_uses_regular_range():
    boot = script(min_delay=0.5, max_delay=0.5, final_delay=None)
    assert boot.delay_for(2, random.Random(1)) == 0.5


def test_random_delays_stay_in_range():
    boot = script(lines=["x"] * 20, min_delay=0.8, max_delay=1.5, final_delay=None)
    rng = random.Random(7)
    delays = [boot.delay_for(i, rng) for i in range(20)]
    assert all(0.8 <= d <= 1.5 for d in delays)


def test_logs_are_appended_and_windowed():
    scheduler = FakeScheduler()
    logged = []
    sequencer = BootSequencer(
        script(lines=["a", "b", "c", "d"], log_window=2),
        scheduler,
        on_log=logged.append,
        rng=random.Random(3),
    )
    sequencer.mount()
    assert sequencer.logs == []

    scheduler.advance()
    scheduler.advance()
    assert sequencer.logs == ["log-a", "log-b"]

    scheduler.advance()
    scheduler.advance()
    assert len(sequencer.logs) == 4
    assert sequencer.logs[2] in ("log-a", "log-b")
    assert sequencer.visible_logs == sequencer.logs[-2:]
    assert logged == sequencer.logs


def test_no_logs_means_nothing_appended():
    scheduler = FakeScheduler()
    sequencer = BootSequencer(script(logs=()), scheduler)
    sequencer.mount()
    scheduler.advance()
    assert sequencer.logs == []


def test_unmount_cancels_pending_timer():
    scheduler = FakeScheduler()
    completed = []
    sequencer = BootSequencer(script(), scheduler, on_complete=lambda: completed.append(1))
    sequencer.mount()
    scheduler.advance()

    sequencer.unmount()

    assert scheduler.timers[-1].cancelled
    assert scheduler.pending() == []
    assert sequencer.state is BootState.IDLE
    assert sequencer.index == -1

    # A timer firing after unmount must not resume the sequence.
    scheduler.timers[-1].callback()
    assert sequencer.state is BootState.IDLE
    assert len(scheduler.timers) == 2
    assert completed == []


def test_unmount_when_idle_is_harmless():
    sequencer = BootSequencer(script(), FakeScheduler())
    sequencer.unmount()
    assert sequencer.state is BootState.IDLE


def test_mount_while_playing_is_ignored():
    scheduler = FakeScheduler()
    sequencer = BootSequencer(script(), scheduler)
    sequencer.mount()
    sequencer.mount()
    assert len(scheduler.timers) == 1


def test_remount_replays_from_first_line():
    scheduler = FakeScheduler()
    shown = []
    sequencer = BootSequencer(
        script(), scheduler, on_line=lambda index, line: shown.append(index)
    )
    sequencer.mount()
    scheduler.advance()
    sequencer.unmount()
    sequencer.mount()
    assert shown == [0, 1, 0]
    assert sequencer.logs == []
    assert len(scheduler.pending()) == 1


def test_single_line_script():
    scheduler = FakeScheduler()
    completed = []
    sequencer = BootSequencer(
        script(lines=["only"], final_delay=0.5),
        scheduler,
        on_complete=lambda: completed.append(1),
    )
    sequencer.mount()
    scheduler.advance()
    assert completed == [1]
    assert [t.delay for t in scheduler.timers] == [0.5]


def test_script_validation():
    with pytest.raises(ValueError):
        BootScript(lines=())
    with pytest.raises(ValueError):
        BootScript(min_delay=2.0, max_delay=1.0)
    with pytest.raises(ValueError):
        BootScript(min_delay=-1.0)
    with pytest.raises(ValueError):
        BootScript(final_delay=-0.5)


def test_script_config_round_trip():
    boot = BootScript.from_config(
        {"lines": ["a", "b"], "min_delay": 0.25, "max_delay": 0.5, "final_delay": None}
    )
    assert boot.lines == ("a", "b")
    assert boot.logs == DEFAULT_LOGS
    assert boot.final_delay is None
    assert boot.to_config() == {
        "lines": ["a", "b"],
        "logs": list(DEFAULT_LOGS),
        "minDelay": 250,
        "maxDelay": 500,
        "finalDelay": None,
        "logWindow": 3,
    }
    assert BootScript.from_config({}).to_config()["finalDelay"] == 2000


def test_plays_on_asyncio_event_loop():
    async def run():
        loop = asyncio.get_running_loop()
        done = loop.create_future()
        sequencer = BootSequencer(
            script(min_delay=0.0, max_delay=0.0, final_delay=0.0),
            loop,
            on_complete=lambda: done.set_result(True),
        )
        sequencer.mount()
        await asyncio.wait_for(done, timeout=5)
        return sequencer

    sequencer = asyncio.run(run())
    assert sequencer.state is BootState.COMPLETE
    assert sequencer.logs[:2] == ["log-a", "log-b"]
