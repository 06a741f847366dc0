"""Exception hierarchy for the autofill engine."""

from typing import Optional


class AutofillError(Exception):
    """Base class for all autofill engine errors."""


class SurfaceError(AutofillError):
    """The form surface failed or returned data the engine cannot use."""

    def __init__(self, message: str, surface_id: Optional[str] = None):
        super().__init__(message)
        self.surface_id = surface_id


class KnowledgeBaseError(AutofillError):
    """The knowledge base store could not be read or written."""


class InvalidTransitionError(AutofillError):
    """A session signal arrived in a state that does not accept it."""

    def __init__(self, signal: str, state: str):
        super().__init__(f"Cannot {signal} a session in state '{state}'")
        self.signal = signal
        self.state = state
