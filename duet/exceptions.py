"""Exception hierarchy for the duet player.

Only ServiceError routinely escapes to callers (from the service clients).
Engines convert LoadFailure and PlaybackFailure into EngineState.error, and
the queue answers EmptyQueue/OutOfRangeIndex conditions with None or a clamp.
"""


class DuetError(Exception):
    """Base exception for all duet player errors."""

    pass


class LoadFailure(DuetError):
    """Media URL could not be resolved, is unreachable, or is unsupported."""

    pass


class PlaybackFailure(DuetError):
    """The audio device rejected playback after the media was loaded."""

    pass


class EmptyQueue(DuetError):
    """Navigation was requested on a queue with no items."""

    pass


class OutOfRangeIndex(DuetError):
    """A queue index fell outside the item range."""

    pass


class ServiceError(DuetError):
    """A backend service request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
