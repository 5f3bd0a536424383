"""
Clock Engine - Game Clock + Shot Clock Core

Owns the countdown values of one panel and the tick/reset algorithms.
Every duration and instant handled here is an integer number of
milliseconds; instants come from a monotonic source supplied by the caller.

Tick model:
    The owning scheduler calls advance(now) roughly every 50 ms while the
    engine runs. Nothing is committed until at least 100 ms have been
    measured since the last committed tick, and then the *measured* elapsed
    time is subtracted (never a nominal tick length). Splitting the same
    total elapsed time into any number of calls therefore yields the same
    remaining values.

    advance(t0)          -> baseline only (first call after a start)
    advance(t0 + 50)     -> below granularity, nothing committed
    advance(t0 + 120)    -> both clocks lose 120 ms, baseline = t0 + 120

Shot clock mode:
    The reset duration is derived from the game clock on every read:
        main_remaining <= 2:00  -> 10 s
        main_remaining  > 2:00  -> 15 s
    Crossing 2:00 never touches an in-flight shot clock; it only changes
    what the next reset sets.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Durations (ms)
MAIN_CLOCK_DEFAULT_MS = 10 * 60 * 1000
SHOT_CLOCK_DEFAULT_MS = 15 * 1000
SHOT_CLOCK_MAX_MS = 60 * 1000
SHORT_MODE_THRESHOLD_MS = 2 * 60 * 1000
SHORT_RESET_MS = 10 * 1000
LONG_RESET_MS = 15 * 1000

# Tick cadence (ms)
TICK_GRANULARITY_MS = 100
TICK_INTERVAL_MS = TICK_GRANULARITY_MS // 2
AUTO_RESET_DELAY_MS = 150

SHOT_NUDGE_MS = 5 * 1000


class ClockState(Enum):
    """Top-level engine state."""
    IDLE = "IDLE"                  # Paused or never started
    RUNNING = "RUNNING"            # Both clocks counting down
    MAIN_EXPIRED = "MAIN_EXPIRED"  # Game clock hit zero, forced pause


class ClockEvent(Enum):
    """Events emitted by advance(), with a suggested notification pulse."""
    MAIN_EXPIRED = "MAIN_EXPIRED"
    SHOT_EXPIRED = "SHOT_EXPIRED"

    @property
    def pulse_ms(self) -> int:
        """Suggested feedback pulse length for this event."""
        return 800 if self is ClockEvent.MAIN_EXPIRED else 200


@dataclass(frozen=True)
class TickResult:
    """Outcome of a single advance() call."""
    committed: bool = False
    elapsed_ms: int = 0
    events: Tuple[ClockEvent, ...] = field(default_factory=tuple)

    @property
    def main_expired(self) -> bool:
        return ClockEvent.MAIN_EXPIRED in self.events

    @property
    def shot_expired(self) -> bool:
        return ClockEvent.SHOT_EXPIRED in self.events


def active_reset_for(main_remaining_ms: int) -> int:
    """Shot clock reset duration that applies at the given game clock value."""
    if main_remaining_ms <= SHORT_MODE_THRESHOLD_MS:
        return SHORT_RESET_MS
    return LONG_RESET_MS


def _require_int(name: str, value) -> int:
    # bool is an int subclass but never a meaningful duration
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer number of milliseconds, got {value!r}")
    return value


class ClockEngine:
    """
    Countdown state for one panel: a game clock and a dependent shot clock.

    The engine never raises for out-of-range values. Shot adjustments clamp
    to [0, 60 s], both clocks floor at zero, and a non-monotonic ``now`` is
    treated as zero elapsed time.
    """

    def __init__(self):
        self.main_remaining: int = MAIN_CLOCK_DEFAULT_MS
        self.shot_remaining: int = SHOT_CLOCK_DEFAULT_MS
        self.is_running: bool = False
        self.last_tick: Optional[int] = None

    @property
    def active_reset_duration(self) -> int:
        """Current shot reset duration. Recomputed on every read, never cached."""
        return active_reset_for(self.main_remaining)

    @property
    def state(self) -> ClockState:
        if self.is_running:
            return ClockState.RUNNING
        if self.main_remaining == 0:
            return ClockState.MAIN_EXPIRED
        return ClockState.IDLE

    def toggle_run(self) -> bool:
        """
        Start or pause both clocks.

        Entering the running state clears the tick baseline so time spent
        paused is never applied. An expired game clock stays paused until
        reset_all().

        Returns:
            The running flag after the call.
        """
        if not self.is_running and self.main_remaining == 0:
            logger.debug("toggle_run ignored: game clock expired")
            return False

        self.is_running = not self.is_running
        self.last_tick = None
        return self.is_running

    def reset_all(self):
        """Return to defaults from any state."""
        self.main_remaining = MAIN_CLOCK_DEFAULT_MS
        self.shot_remaining = SHOT_CLOCK_DEFAULT_MS
        self.is_running = False
        self.last_tick = None

    def reset_shot(self) -> int:
        """Set the shot clock to the reset duration active right now."""
        self.shot_remaining = self.active_reset_duration
        return self.shot_remaining

    def adjust_shot(self, delta_ms: int) -> int:
        """Nudge the shot clock, clamping silently to [0, 60 s]."""
        delta_ms = _require_int('delta_ms', delta_ms)
        self.shot_remaining = max(0, min(SHOT_CLOCK_MAX_MS, self.shot_remaining + delta_ms))
        return self.shot_remaining

    def advance(self, now: int) -> TickResult:
        """
        Apply the time measured since the last committed tick.

        Args:
            now: Current monotonic instant in milliseconds

        Returns:
            TickResult describing what was committed and which events fired
        """
        now = _require_int('now', now)

        if not self.is_running:
            return TickResult()

        if self.last_tick is None:
            self.last_tick = now
            return TickResult()

        # Earlier than the baseline: ignore rather than add time back
        elapsed = max(0, now - self.last_tick)
        if elapsed < TICK_GRANULARITY_MS:
            return TickResult()

        main_before = self.main_remaining
        shot_before = self.shot_remaining

        self.main_remaining = max(0, main_before - elapsed)
        self.shot_remaining = max(0, shot_before - elapsed)
        self.last_tick = now

        events = []
        if main_before > 0 and self.main_remaining == 0:
            self.is_running = False
            self.last_tick = None
            events.append(ClockEvent.MAIN_EXPIRED)

        if (shot_before > 0 and self.shot_remaining == 0
                and self.is_running and self.main_remaining > 0):
            events.append(ClockEvent.SHOT_EXPIRED)

        return TickResult(committed=True, elapsed_ms=elapsed, events=tuple(events))
