"""
shot-clock: Dual Game Clock + Shot Clock Engine

This package provides the timing core for officiating a timed game: a
countdown game clock and a dependent shot clock that resets itself after
expiring. Its reset duration follows the game clock (15 s, or 10 s
inside the last two minutes).

Architecture:
    scheduler (50 ms) → PanelController → ClockEngine
                              │
                              ├─▶ Notifier (MAIN_EXPIRED / SHOT_EXPIRED)
                              └─▶ ClockSnapshot (console, HTTP /status)

Two panels run side by side, each with its own engine and no shared state.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .engine.clock_engine import (
    ClockEngine,
    ClockEvent,
    ClockState,
    TickResult,
)
from .interfaces.snapshot import ClockSnapshot
from .panel import PanelController, create_panel, create_panels

__all__ = [
    "ClockEngine",
    "ClockEvent",
    "ClockState",
    "TickResult",
    "ClockSnapshot",
    "PanelController",
    "create_panel",
    "create_panels",
    "__version__",
]
