"""Panel controllers and the factory that builds independent panels.

Each panel owns its own ClockEngine; nothing is shared between panels
except the scheduler they are attached to, which only orders callbacks.
"""

from typing import Iterable, List, Optional

from ..output.notifier import Notifier
from ..scheduling.scheduler import Scheduler
from .controller import DisplayCallback, PanelController

DEFAULT_TITLES = ("CLOCK A", "CLOCK B")


def create_panel(
    scheduler: Scheduler,
    title: str,
    notifier: Optional[Notifier] = None,
    display: Optional[DisplayCallback] = None,
) -> PanelController:
    """Build one panel with a fresh engine."""
    return PanelController(scheduler, title=title, notifier=notifier, display=display)


def create_panels(
    scheduler: Scheduler,
    titles: Iterable[str] = DEFAULT_TITLES,
    notifier: Optional[Notifier] = None,
    display: Optional[DisplayCallback] = None,
) -> List[PanelController]:
    """Build one independent panel per title."""
    return [create_panel(scheduler, title, notifier, display) for title in titles]


__all__ = ['DEFAULT_TITLES', 'PanelController', 'create_panel', 'create_panels']
