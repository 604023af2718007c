"""Error taxonomy of the call-signaling coordinator.

Every domain error carries a stable ``code`` and an HTTP ``status_code`` so the
API layer can map it without knowing the individual classes.
"""
from fastapi import status


class SignalingError(Exception):
    code = "signaling_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = None):
        self.message = message or self.__doc__ or self.code
        super().__init__(self.message)


class CallNotFound(SignalingError):
    """Call not found"""
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class CallEnded(CallNotFound):
    """Call has ended"""
    code = "not_found"


class Unauthorized(SignalingError):
    """Not a participant allowed to perform this action"""
    code = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(SignalingError):
    """Action is not legal in the call's current state"""
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class AlreadyInCall(SignalingError):
    """Participant already has an active call"""
    code = "already_in_call"
    status_code = status.HTTP_409_CONFLICT


class SelfCallNotAllowed(SignalingError):
    """Cannot call yourself"""
    code = "self_call_not_allowed"
    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyAnswered(InvalidTransition):
    """Call has already been answered"""
    code = "already_answered"


class SignalingUnavailable(SignalingError):
    """Call is busy, try again"""
    code = "unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class LockContention(Exception):
    """Raised internally when a call lock cannot be acquired in time; retried before surfacing."""
