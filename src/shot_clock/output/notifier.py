"""
Notification sinks for clock events.

A panel hands MAIN_EXPIRED / SHOT_EXPIRED to a notifier fire-and-forget.
What the notifier does with it (vibrate a device, flash a light, write a
log line) is its own business; the clock only guarantees when it is called.
"""

import logging
from typing import Protocol

from ..engine.clock_engine import ClockEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, event: ClockEvent, panel: str) -> None: ...


class LogNotifier:
    """Notifier that records each event as an INFO log line."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def notify(self, event: ClockEvent, panel: str) -> None:
        self.log.info(f"[{panel}] {event.value} (pulse {event.pulse_ms} ms)")


class NullNotifier:
    """Silent notifier for platforms without feedback hardware."""

    def notify(self, event: ClockEvent, panel: str) -> None:
        pass
