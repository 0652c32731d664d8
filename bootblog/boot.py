"""Terminal boot sequence for bootblog.

Before a page is revealed, a scripted list of boot messages is played one line
at a time with a short delay between lines. This module models that animation
as a finite-state machine driven by a single timer:

    IDLE --mount()--> PLAYING(0) --timer--> PLAYING(1) ... --timer--> COMPLETE

With N lines there are exactly N timer intervals: one after each line,
the last one being the hold before completion. ``unmount()`` cancels the
pending timer and returns to IDLE, so no callback ever fires against a view
that is gone.

The same script is serialized with ``BootScript.to_config()`` and played in the
browser by the inline script in ``base.html.jinja``.
"""

from __future__ import annotations

import enum
import logging
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .protocols import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_LINES = (
    "Found 0x55aa...",
    "Loading kernel...",
    "Initializing drivers...",
    "Mounting filesystems...",
    "Configuring network interfaces...",
    "Setting up user environment...",
    "Starting services...",
    "Loading user profiles...",
    "Boot complete!",
)

DEFAULT_LOGS = (
    "[kernel] Initializing system hardware...",
    "[systemd] Mounting root file system...",
    "[network] Detecting network interfaces...",
    "[syslog] Starting logging daemon...",
    "[auth] Loading authentication modules...",
    "[init] Configuring environment variables...",
    "[app] Starting application services...",
    "[user] Welcome, user!",
)


class BootState(str, enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class BootScript:
    """Lines, log messages and timing of a boot sequence.

    Delays are in seconds. Each line is shown for a random delay in
    ``[min_delay, max_delay]``; the last line is held for ``final_delay``
    when set.

    Attributes:
        lines: Messages shown one at a time.
        logs: Log messages appended as each line completes.
        min_delay: Lower bound of the per-line delay.
        max_delay: Upper bound of the per-line delay.
        final_delay: Hold on the last line, or None for a regular delay.
        log_window: How many recent log messages stay visible.
    """

    lines: tuple[str, ...] = DEFAULT_LINES
    logs: tuple[str, ...] = DEFAULT_LOGS
    min_delay: float = 0.8
    max_delay: float = 1.5
    final_delay: float | None = 2.0
    log_window: int = 3

    def __post_init__(self):
        if not self.lines:
            raise ValueError("boot script needs at least one line")
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ValueError(
                f"invalid delay range [{self.min_delay}, {self.max_delay}]"
            )
        if self.final_delay is not None and self.final_delay < 0:
            raise ValueError("final_delay must not be negative")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> BootScript:
        """Build a script from the ``boot`` section of the site config."""
        final_delay = config.get("final_delay", 2.0)
        return cls(
            lines=tuple(str(line) for line in config.get("lines") or DEFAULT_LINES),
            logs=tuple(str(line) for line in config.get("logs") or DEFAULT_LOGS),
            min_delay=float(config.get("min_delay", 0.8)),
            max_delay=float(config.get("max_delay", 1.5)),
            final_delay=None if final_delay is None else float(final_delay),
            log_window=int(config.get("log_window", 3)),
        )

    def to_config(self) -> dict[str, Any]:
        """Serialize for the client script; delays in milliseconds."""
        return {
            "lines": list(self.lines),
            "logs": list(self.logs),
            "minDelay": round(self.min_delay * 1000),
            "maxDelay": round(self.max_delay * 1000),
            "finalDelay": None
            if self.final_delay is None
            else round(self.final_delay * 1000),
            "logWindow": self.log_window,
        }

    def log_for(self, index: int, rng: random.Random) -> str | None:
        """Log message appended when line ``index`` completes."""
        if not self.logs:
            return None
        if index < len(self.logs):
            return self.logs[index]
        return rng.choice(self.logs)

    def delay_for(self, index: int, rng: random.Random) -> float:
        """Delay after line ``index`` is shown."""
        if index == len(self.lines) - 1 and self.final_delay is not None:
            return self.final_delay
        return rng.uniform(self.min_delay, self.max_delay)


@dataclass
class BootSequencer:
    """Plays a BootScript on a scheduler, one line per timer interval.

    Attributes:
        script: The boot script to play.
        scheduler: Anything with ``call_later(delay, callback)``.
        on_line: Called with (index, line) whenever a line is shown.
        on_complete: Called once when the sequence completes.
        on_log: Called with each log message as it is appended.
        rng: Random source for delays.
    """

    script: BootScript
    scheduler: Scheduler
    on_line: Callable[[int, str], Any] | None = None
    on_complete: Callable[[], Any] | None = None
    on_log: Callable[[str], Any] | None = None
    rng: random.Random = field(default_factory=random.Random)
    state: BootState = field(default=BootState.IDLE, init=False)
    index: int = field(default=-1, init=False)
    logs: list[str] = field(default_factory=list, init=False)
    _timer: TimerHandle | None = field(default=None, init=False, repr=False)

    @property
    def current_line(self) -> str | None:
        if self.state is not BootState.PLAYING:
            return None
        return self.script.lines[self.index]

    @property
    def visible_logs(self) -> list[str]:
        return self.logs[-self.script.log_window :] if self.script.log_window else []

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def mount(self) -> None:
        """Start playing from the first line; ignored while already playing."""
        if self.state is BootState.PLAYING:
            return
        self.logs = []
        self._show(0)

    def unmount(self) -> None:
        """Cancel the pending timer and return to IDLE."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.state is BootState.PLAYING:
            logger.debug("Boot sequence cancelled at line %d", self.index)
        self.state = BootState.IDLE
        self.index = -1

    def _show(self, index: int) -> None:
        self.state = BootState.PLAYING
        self.index = index
        if self.on_line is not None:
            self.on_line(index, self.script.lines[index])
        self._timer = self.scheduler.call_later(
            self.script.delay_for(index, self.rng), self._tick
        )

    def _tick(self) -> None:
        self._timer = None
        if self.state is not BootState.PLAYING:
            return
        message = self.script.log_for(self.index, self.rng)
        if message is not None:
            self.logs.append(message)
            if self.on_log is not None:
                self.on_log(message)
        next_index = self.index + 1
        if next_index < len(self.script.lines):
            self._show(next_index)
            return
        self.state = BootState.COMPLETE
        logger.debug("Boot sequence complete after %d lines", len(self.script.lines))
        if self.on_complete is not None:
            self.on_complete()
