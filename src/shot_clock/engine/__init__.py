"""Core clock engine - countdown state and tick/reset algorithms.

Contains:
- ClockEngine: Game clock + dependent shot clock for one panel
"""

from .clock_engine import ClockEngine, ClockEvent, ClockState, TickResult, active_reset_for

__all__ = ['ClockEngine', 'ClockEvent', 'ClockState', 'TickResult', 'active_reset_for']
