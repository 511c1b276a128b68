"""
Exception hierarchy for session orchestration.

Setup errors and finalize failures are fatal and surface to the user.
Capture acquisition and validation failures are recovered inside the
orchestrator (skip and retry respectively).
"""


class SessionError(Exception):
    """Base class for all session errors."""


class SetupError(SessionError):
    """Session inputs are missing or incomplete; playback never starts."""


class MissingSessionDataError(SetupError):
    """A required piece of session data is absent or empty."""

    def __init__(self, missing):
        if isinstance(missing, str):
            missing = [missing]
        self.missing = list(missing)
        super().__init__(f"Missing session data: {', '.join(self.missing)}")


class CaptureAcquisitionError(SessionError):
    """The microphone could not be opened."""


class ValidationFailure(SessionError):
    """The backend rejected an answer or could not validate it."""


class TransportError(SessionError, RuntimeError):
    """Network or HTTP failure talking to the backend."""

    def __init__(self, message: str, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class FinalizeError(SessionError):
    """Closing the session on the backend failed."""
