"""Typed failures raised by the check-in engine.

Every rejected check-in maps to one of these classes so the API can return a
specific, actionable reason. ``retryable`` tells the caller whether the same
request may simply be sent again.
"""
from typing import Any, Dict, Optional


class CheckInError(Exception):
    """Base class for all domain failures."""

    status_code = 400
    code = 'checkin_error'
    retryable = False

    def __init__(self, message: str = None, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'code': self.code,
            'retryable': self.retryable,
        }
        data.update(self.extra)
        return data


# =================== TOKEN ERRORS ===================
# Terminal for the attempt; the host has to issue a new token.

class TokenError(CheckInError):
    """Check-in token rejected."""


class TokenNotFound(TokenError):
    """Check-in link is not recognised. Please ask your teacher for a new one."""
    status_code = 404
    code = 'token_not_found'


class TokenExpired(TokenError):
    """Check-in link has expired. Please ask your teacher to generate a new one."""
    status_code = 410
    code = 'token_expired'


class TokenInvalidated(TokenError):
    """Check-in window was closed by the host."""
    status_code = 410
    code = 'token_invalidated'


# =================== PROXIMITY ERRORS ===================
# The student may retry right away with the same token.

class ProximityError(CheckInError):
    """Location check failed."""
    status_code = 403
    retryable = True


class LocationRequired(ProximityError):
    """Location is required for this session. Please enable GPS and try again."""
    status_code = 422
    code = 'location_required'


class TooFarFromHost(ProximityError):
    """You are too far from the host location."""
    code = 'too_far_from_host'

    def __init__(self, distance_meters: float, radius_meters: float, host_address: str = None):
        message = (
            f"You are {round(distance_meters)}m from the host; "
            f"the maximum allowed is {round(radius_meters)}m."
        )
        if host_address:
            message += f" Please move closer to {host_address} to check in."
        super().__init__(message, extra={
            'distance_meters': round(distance_meters, 2),
            'radius_meters': radius_meters,
        })
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


# =================== ELIGIBILITY ERRORS ===================

class NotEnrolled(CheckInError):
    """You are not actively enrolled in this session."""
    status_code = 403
    code = 'not_enrolled'


class FaceMatchFailed(CheckInError):
    """Face verification did not match your reference photo."""
    status_code = 401
    code = 'face_match_failed'
    retryable = True


class SessionNotScheduled(CheckInError):
    """The session does not run on this date."""
    status_code = 400
    code = 'session_not_scheduled'


# =================== CONFIGURATION / INPUT ERRORS ===================

class ValidationError(CheckInError):
    """Invalid input."""
    code = 'validation_error'


class ConfigurationError(ValidationError):
    """Invalid session or scoring configuration."""
    code = 'configuration_error'


# =================== STORAGE ERRORS ===================

class StorageUnavailable(CheckInError):
    """Storage is temporarily unavailable. Please try again."""
    status_code = 503
    code = 'storage_unavailable'
    retryable = True


class AttendanceIntegrityError(CheckInError):
    """Attendance could not be saved because of an integrity failure."""
    status_code = 500
    code = 'attendance_integrity_error'
