"""
Custom exception classes for tutorial runs.
"""
from typing import Optional


class TutorialError(Exception):
    """Base exception for failures raised by tutorial code itself."""

    def __init__(self, message: str, step: Optional[str] = None):
        """
        Initialize tutorial error.

        Args:
            message: Error message
            step: Name of the step that failed, if known
        """
        super().__init__(message)
        self.message = message
        self.step = step


class ResourceStateError(TutorialError):
    """A resource reached a state it cannot recover from while being waited on."""

    def __init__(self, resource: str, state: str):
        super().__init__(f"{resource} entered state {state}")
        self.resource = resource
        self.state = state


class WaitTimeoutError(TutorialError):
    """A waiter or status poll gave up before the resource was ready."""

    def __init__(self, description: str, waited: Optional[float] = None):
        if waited is None:
            message = f"Timed out waiting for {description}"
        else:
            message = f"Timed out waiting for {description} after {waited:.0f}s"
        super().__init__(message)
        self.description = description
        self.waited = waited


class VerificationError(TutorialError):
    """An exercise step observed something other than the expected outcome."""
