"""Lifecycle building blocks: tracking, waiting and running tutorials."""

from .tracker import CleanupReport, ResourceTracker, TrackedResource
from .tutorial import Tutorial, TutorialResult, TutorialStatus
from .waiters import pause, poll_until, retry_call, wait_for
from .registry import get_tutorial, list_tutorials, register

__all__ = [
    "CleanupReport",
    "ResourceTracker",
    "TrackedResource",
    "Tutorial",
    "TutorialResult",
    "TutorialStatus",
    "pause",
    "poll_until",
    "retry_call",
    "wait_for",
    "get_tutorial",
    "list_tutorials",
    "register",
]
