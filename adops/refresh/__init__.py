"""Periodic data-refresh coordination."""

from .broadcast import RefreshBroadcaster
from .coordinator import FetchOperation, RefreshCoordinator
from .events import EventChannel, RefreshEvent, RefreshEventKind, Subscription
from .policy import DEFAULT_INTERVAL_SECONDS, RefreshOptions, next_delay
from .state import ActivationToken, RefreshSnapshot, RefreshState

__all__ = [
    "RefreshBroadcaster",
    "FetchOperation",
    "RefreshCoordinator",
    "EventChannel",
    "RefreshEvent",
    "RefreshEventKind",
    "Subscription",
    "DEFAULT_INTERVAL_SECONDS",
    "RefreshOptions",
    "next_delay",
    "ActivationToken",
    "RefreshSnapshot",
    "RefreshState",
]
