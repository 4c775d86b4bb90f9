"""Event recording and the instrumentation facade."""

from .recorder import AtomicCounter, EventRecorder, get_recorder
from .tracker import Tracker, get_tracker

__all__ = [
    "AtomicCounter",
    "EventRecorder",
    "Tracker",
    "get_recorder",
    "get_tracker",
]
