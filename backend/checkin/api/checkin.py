"""Student self check-in."""
from flask import Blueprint, request

from checkin import limiter
from checkin.services.attendance_service import CheckInService, FaceMatch
from checkin.services.proximity_service import Coordinates
from checkin.utils.decorators import current_user, student_required
from checkin.utils.errors import NotEnrolled, ValidationError
from checkin.utils.helpers import success_response

checkin_bp = Blueprint('checkin', __name__)


def _first(data: dict, *keys):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@checkin_bp.route('', methods=['POST'])
@limiter.limit("30 per minute")
@student_required
def check_in():
    """Check in with a token from the host's QR code or photo link.

    Body: ``token``, optional ``coordinates`` ({latitude, longitude,
    accuracy}), ``check_in_method`` and ``face_match`` ({matched}).
    camelCase keys are accepted too.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be JSON")

    token = data.get('token')
    if not token:
        raise ValidationError("token is required")

    student = current_user().student_profile
    if student is None:
        raise NotEnrolled("No student profile is linked to this account")

    result = CheckInService.check_in(
        student,
        token,
        coordinates=Coordinates.from_payload(_first(data, 'coordinates', 'reportedCoordinates')),
        method=_first(data, 'check_in_method', 'checkInMethod'),
        face_match=FaceMatch.from_payload(_first(data, 'face_match', 'faceMatchResult')),
    )

    message = 'Checked in late' if result.late_minutes else 'Checked in'
    if result.warning:
        message += ' after the session ended'
    return success_response(data=result.to_dict(), message=message)
