"""
Pytest configuration and fixtures for shot-clock tests.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


class RecordingNotifier:
    """Notifier that remembers every (event, panel) it receives."""

    def __init__(self):
        self.calls = []

    def notify(self, event, panel):
        self.calls.append((event, panel))

    def events(self):
        return [event for event, _ in self.calls]


@pytest.fixture
def engine():
    """Fresh engine at defaults (10:00 / 15 s, paused)."""
    from shot_clock.engine.clock_engine import ClockEngine
    return ClockEngine()


@pytest.fixture
def running_engine():
    """Engine that is running with its tick baseline at t=0."""
    from shot_clock.engine.clock_engine import ClockEngine

    eng = ClockEngine()
    eng.toggle_run()
    eng.advance(0)
    return eng


@pytest.fixture
def scheduler():
    """Virtual-time scheduler starting at t=0."""
    from shot_clock.scheduling.scheduler import ManualScheduler
    return ManualScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def panel(scheduler, notifier):
    """Panel on the manual scheduler with a recording notifier."""
    from shot_clock.panel import create_panel
    return create_panel(scheduler, "CLOCK A", notifier=notifier)
