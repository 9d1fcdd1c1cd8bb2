"""
Error taxonomy shared by the player, the API client and the backend.

Playback and storage failures are converted into state flags where they happen;
ServiceError is the only one that normally travels up to the caller.
"""

from typing import Optional


class RevifyError(Exception):
    """Base class for all Revify errors."""


class PlaybackError(RevifyError):
    """The audio resource failed to load or start a track."""

    def __init__(self, track_id: Optional[str], message: str):
        super().__init__(message)
        self.track_id = track_id
        self.message = message

    def __str__(self) -> str:
        return f"Playback failed for {self.track_id}: {self.message}"


class QueueEmptyError(RevifyError):
    """Next/previous was requested but there is nothing to play."""


class PersistenceError(RevifyError):
    """Reading or writing local state failed."""


class ServiceError(RevifyError):
    """A call to the backend failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NotFound(ServiceError):
    """The requested song, user or playlist does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status=404)
