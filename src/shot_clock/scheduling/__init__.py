"""Single-threaded schedulers driving panel tick loops and delayed resets."""

from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, TimerHandle

__all__ = ['AsyncioScheduler', 'ManualScheduler', 'Scheduler', 'TimerHandle']
