"""
Panel Controller - one on-screen panel driving one ClockEngine

Responsibilities:
    - Tick loop: while the engine runs, advance(now) is called every 50 ms
      on the panel's scheduler. The loop is cancelled (not paused) when the
      engine stops, and every scheduled callback carries a generation token
      so one that fires after cancellation does nothing.
    - Shot clock auto-reset: SHOT_EXPIRED schedules a reset 150 ms later.
      The callback re-reads engine state when it runs, so a pause or a
      game clock expiry during the delay suppresses it and the reset
      duration is the one active at execution time.
    - Wiring: events go to the notifier, fresh snapshots go to
      latest_snapshot and the optional display callback.

All of this runs on a single scheduling context; no locks are involved.
"""

import functools
import logging
import time
from typing import Callable, Dict, Optional

from ..engine.clock_engine import (
    AUTO_RESET_DELAY_MS,
    SHOT_NUDGE_MS,
    TICK_INTERVAL_MS,
    ClockEngine,
    ClockEvent,
    TickResult,
)
from ..interfaces.snapshot import ClockSnapshot
from ..output.notifier import Notifier, NullNotifier
from ..scheduling.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DisplayCallback = Callable[[ClockSnapshot], None]


class PanelController:
    """
    Owns one ClockEngine and translates user intents into engine operations.

    Every command returns the resulting ClockSnapshot.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        title: str = "",
        notifier: Optional[Notifier] = None,
        display: Optional[DisplayCallback] = None,
        engine: Optional[ClockEngine] = None,
    ):
        """
        Args:
            scheduler: Single-threaded scheduling context for this panel
            title: Panel label carried in snapshots and notifications
            notifier: Receives MAIN_EXPIRED / SHOT_EXPIRED
            display: Called with each new snapshot after a state change
            engine: Pre-built engine (a fresh one by default)
        """
        self.scheduler = scheduler
        self.title = title
        self.notifier = notifier or NullNotifier()
        self.display = display
        self.engine = engine or ClockEngine()

        self._tick_handle: Optional[TimerHandle] = None
        self._tick_generation = 0
        self._reset_handle: Optional[TimerHandle] = None
        self._reset_generation = 0

        self.stats: Dict[str, float] = {
            'start_time': time.time(),
            'tick_count': 0,
            'committed_ticks': 0,
            'main_expired_count': 0,
            'shot_expired_count': 0,
            'auto_reset_count': 0,
        }

        self.latest_snapshot: ClockSnapshot = self.snapshot()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def toggle_run(self) -> ClockSnapshot:
        """Start or pause both clocks."""
        running = self.engine.toggle_run()
        if running:
            # Establish the baseline now rather than one cadence later
            self.engine.advance(self.scheduler.now_ms())
            self._start_tick_loop()
            self._arm_stalled_auto_reset()
            logger.debug(f"[{self.title}] started")
        else:
            self._stop_tick_loop()
            self._cancel_auto_reset()
            logger.debug(f"[{self.title}] paused")
        return self._publish()

    def reset_all(self) -> ClockSnapshot:
        self._stop_tick_loop()
        self._cancel_auto_reset()
        self.engine.reset_all()
        logger.debug(f"[{self.title}] reset all")
        return self._publish()

    def reset_shot(self) -> ClockSnapshot:
        self._cancel_auto_reset()
        self.engine.reset_shot()
        return self._publish()

    def adjust_shot(self, delta_ms: int) -> ClockSnapshot:
        shot_before = self.engine.shot_remaining
        self.engine.adjust_shot(delta_ms)

        # Clamped to the same value: a pending auto-reset keeps its deadline
        if self.engine.shot_remaining == shot_before:
            self._arm_stalled_auto_reset()
            return self._publish()

        self._cancel_auto_reset()
        if shot_before > 0 and self.engine.shot_remaining == 0 and self._may_auto_reset():
            self._notify(ClockEvent.SHOT_EXPIRED)
        self._arm_stalled_auto_reset()
        return self._publish()

    def nudge_shot_up(self) -> ClockSnapshot:
        return self.adjust_shot(SHOT_NUDGE_MS)

    def nudge_shot_down(self) -> ClockSnapshot:
        return self.adjust_shot(-SHOT_NUDGE_MS)

    def advance(self, now: int) -> ClockSnapshot:
        """Apply one tick at instant ``now`` and dispatch its events."""
        result = self.engine.advance(now)
        self.stats['tick_count'] += 1
        if not result.committed:
            return self.latest_snapshot

        self.stats['committed_ticks'] += 1
        self._dispatch(result)
        return self._publish()

    def snapshot(self) -> ClockSnapshot:
        return ClockSnapshot.from_engine(self.engine, self.title)

    @property
    def auto_reset_pending(self) -> bool:
        return self._reset_handle is not None

    @property
    def tick_loop_active(self) -> bool:
        return self._tick_handle is not None

    def close(self):
        """Tear down: cancel the tick loop and any pending auto-reset."""
        self._stop_tick_loop()
        self._cancel_auto_reset()
        logger.debug(f"[{self.title}] closed")

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------

    def _start_tick_loop(self):
        self._stop_tick_loop()
        self._schedule_tick()

    def _schedule_tick(self):
        self._tick_handle = self.scheduler.call_later(
            TICK_INTERVAL_MS,
            functools.partial(self._on_tick, self._tick_generation),
        )

    def _stop_tick_loop(self):
        self._tick_generation += 1
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _on_tick(self, generation: int):
        if generation != self._tick_generation or not self.engine.is_running:
            return

        try:
            self.advance(self.scheduler.now_ms())
        except Exception as e:
            logger.exception(f"[{self.title}] tick error: {e}")

        if generation == self._tick_generation and self.engine.is_running:
            self._schedule_tick()
        else:
            self._tick_handle = None

    # ------------------------------------------------------------------
    # Events and auto-reset
    # ------------------------------------------------------------------

    def _dispatch(self, result: TickResult):
        for event in result.events:
            self._notify(event)

        if result.main_expired:
            logger.info(f"[{self.title}] game clock expired")
            self._stop_tick_loop()
            self._cancel_auto_reset()
        elif result.shot_expired:
            self._schedule_auto_reset()

    def _notify(self, event: ClockEvent):
        if event is ClockEvent.MAIN_EXPIRED:
            self.stats['main_expired_count'] += 1
        else:
            self.stats['shot_expired_count'] += 1

        try:
            self.notifier.notify(event, self.title)
        except Exception as e:
            logger.exception(f"[{self.title}] notifier failed on {event.value}: {e}")

    def _may_auto_reset(self) -> bool:
        return self.engine.is_running and self.engine.main_remaining > 0

    def _arm_stalled_auto_reset(self):
        # Running with the shot clock parked at zero and nothing queued
        if (self._may_auto_reset() and self.engine.shot_remaining == 0
                and self._reset_handle is None):
            self._schedule_auto_reset()

    def _schedule_auto_reset(self):
        self._cancel_auto_reset()
        self._reset_handle = self.scheduler.call_later(
            AUTO_RESET_DELAY_MS,
            functools.partial(self._on_auto_reset, self._reset_generation),
        )
        logger.debug(f"[{self.title}] shot clock auto-reset in {AUTO_RESET_DELAY_MS} ms")

    def _cancel_auto_reset(self):
        self._reset_generation += 1
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _on_auto_reset(self, generation: int):
        if generation != self._reset_generation:
            return
        self._reset_handle = None

        if not self._may_auto_reset() or self.engine.shot_remaining != 0:
            logger.debug(f"[{self.title}] auto-reset skipped")
            return

        # Reset duration is evaluated now, not when the expiry happened
        duration = self.engine.reset_shot()
        self.stats['auto_reset_count'] += 1
        logger.debug(f"[{self.title}] shot clock auto-reset to {duration} ms")
        self._publish()

    # ------------------------------------------------------------------

    def _publish(self) -> ClockSnapshot:
        snap = self.snapshot()
        self.latest_snapshot = snap
        if self.display is not None:
            try:
                self.display(snap)
            except Exception as e:
                logger.exception(f"[{self.title}] display callback failed: {e}")
        return snap
