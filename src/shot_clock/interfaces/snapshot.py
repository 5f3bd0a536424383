"""
Clock Snapshot Data Model

The ClockSnapshot is the contract between a panel and whatever renders it
(console status line, HTTP /status endpoint, a GUI). It is immutable, so a
reference to the latest snapshot can be handed to another thread safely.
"""

from dataclasses import dataclass, asdict
import json

from ..engine.clock_engine import (
    ClockEngine,
    ClockState,
    SHORT_RESET_MS,
)

MAIN_URGENT_MS = 10 * 1000
SHOT_URGENT_MS = 5 * 1000


def _ceil_seconds(ms: int) -> int:
    return -(-ms // 1000)


def format_mmss(ms: int) -> str:
    """
    Format a duration as MM:SS, rounding partial seconds up.

    Examples:
        600000 -> "10:00"
        59001  -> "01:00"
        0      -> "00:00"
    """
    total = _ceil_seconds(ms)
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_ss(ms: int) -> str:
    """Format a duration as whole seconds (rounded up), zero-padded to two digits."""
    return f"{_ceil_seconds(ms):02d}"


@dataclass(frozen=True)
class ClockSnapshot:
    """Render-ready view of one panel."""
    title: str
    main_remaining: int           # ms
    shot_remaining: int           # ms
    is_running: bool
    active_reset_duration: int    # ms, 10000 or 15000
    state: ClockState

    @classmethod
    def from_engine(cls, engine: ClockEngine, title: str = "") -> "ClockSnapshot":
        return cls(
            title=title,
            main_remaining=engine.main_remaining,
            shot_remaining=engine.shot_remaining,
            is_running=engine.is_running,
            active_reset_duration=engine.active_reset_duration,
            state=engine.state,
        )

    @property
    def main_urgent(self) -> bool:
        return self.main_remaining <= MAIN_URGENT_MS

    @property
    def shot_urgent(self) -> bool:
        return self.shot_remaining <= SHOT_URGENT_MS

    @property
    def shot_expired(self) -> bool:
        return self.shot_remaining == 0

    @property
    def main_display(self) -> str:
        return format_mmss(self.main_remaining)

    @property
    def shot_display(self) -> str:
        return format_ss(self.shot_remaining)

    @property
    def mode_label(self) -> str:
        return "10s mode" if self.active_reset_duration == SHORT_RESET_MS else "15s mode"

    def to_dict(self) -> dict:
        result = asdict(self)
        result['state'] = self.state.value
        result.update({
            'main_urgent': self.main_urgent,
            'shot_urgent': self.shot_urgent,
            'shot_expired': self.shot_expired,
            'main_display': self.main_display,
            'shot_display': self.shot_display,
            'mode_label': self.mode_label,
        })
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def status_line(self) -> str:
        """One-line console rendering, e.g. ``CLOCK A 09:58 | 13 (15s mode) RUN``."""
        run_flag = "RUN" if self.is_running else self.state.value
        main = f"{self.main_display}!" if self.main_urgent else self.main_display
        shot = f"{self.shot_display}!" if self.shot_urgent else self.shot_display
        return f"{self.title} {main} | {shot} ({self.mode_label}) {run_flag}"
