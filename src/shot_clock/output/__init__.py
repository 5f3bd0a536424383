"""Output adapters - event notifiers and the HTTP health/status server."""

from .health_server import HealthServer
from .notifier import LogNotifier, Notifier, NullNotifier

__all__ = ['HealthServer', 'LogNotifier', 'Notifier', 'NullNotifier']
