"""Launch lifecycle events and the process-wide fan-out broker."""

from .broker import EventSubscription, StatusMessageEventBroker
from .models import LaunchState, LaunchStep, StatusEventKind, StatusMessageEvent

__all__ = [
    "EventSubscription",
    "LaunchState",
    "LaunchStep",
    "StatusEventKind",
    "StatusMessageEvent",
    "StatusMessageEventBroker",
]
