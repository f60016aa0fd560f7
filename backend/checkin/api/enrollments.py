"""Enrollment API."""
from flask import Blueprint, request

from checkin.models.enrollment import Enrollment
from checkin.services.enrollment_service import EnrollmentService
from checkin.utils.decorators import owned_session, teacher_required
from checkin.utils.errors import ValidationError
from checkin.utils.helpers import success_response
from checkin.utils.validators import Validator

enrollments_bp = Blueprint('enrollments', __name__)


@enrollments_bp.route('', methods=['POST'])
@teacher_required
def create_enrollment():
    data = Validator.require_fields(request.get_json(silent=True), ['student_id', 'session_id'])
    owned_session(data['session_id'])

    enrollment = EnrollmentService.create_enrollment(
        data['student_id'],
        data['session_id'],
        status=data.get('status', 'active'),
        can_host=bool(data.get('can_host', False)),
    )
    return success_response(data=enrollment.to_dict(), message='Student enrolled', status_code=201)


@enrollments_bp.route('/<int:enrollment_id>', methods=['PATCH'])
@teacher_required
def update_enrollment(enrollment_id):
    """Change status or host eligibility; can_host is cleared unless active."""
    enrollment = Enrollment.get_or_404(enrollment_id)
    owned_session(enrollment.session_id)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be JSON")

    can_host = data.get('can_host')
    enrollment = EnrollmentService.update_enrollment(
        enrollment,
        status=data.get('status'),
        can_host=bool(can_host) if can_host is not None else None,
    )
    return success_response(data=enrollment.to_dict(), message='Enrollment updated')
