"""Attendance API: manual marking, bulk marking and listing."""
from flask import Blueprint, request

from checkin.models.attendance import AttendanceRecord, AttendanceStatus
from checkin.services.attendance_service import AttendanceRecorder
from checkin.utils.decorators import current_user, owned_session, teacher_required
from checkin.utils.errors import ValidationError
from checkin.utils.helpers import request_date, success_response
from checkin.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


def _status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        allowed = ', '.join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid status '{value}'. Allowed: {allowed}")


@attendance_bp.route('/mark', methods=['PUT'])
@teacher_required
def mark_attendance():
    """Set or correct one student's attendance for a date."""
    data = Validator.require_fields(request.get_json(silent=True),
                                    ['session_id', 'student_id', 'status'])
    session = owned_session(data['session_id'])

    record = AttendanceRecorder.mark(
        session,
        data['student_id'],
        request_date(data.get('date')),
        _status(data['status']),
        marked_by=current_user().label,
        late_minutes=data.get('late_minutes'),
        excuse_reason=data.get('excuse_reason'),
    )
    return success_response(data=record.to_dict(), message='Attendance marked')


@attendance_bp.route('/bulk', methods=['POST'])
@teacher_required
def bulk_mark_attendance():
    data = Validator.require_fields(request.get_json(silent=True), ['session_id', 'records'])
    session = owned_session(data['session_id'])

    entries = data['records']
    if not isinstance(entries, list):
        raise ValidationError("records must be a list")

    result = AttendanceRecorder.mark_bulk(
        session,
        request_date(data.get('date')),
        entries,
        marked_by=current_user().label,
    )
    return success_response(
        data=result,
        message=f"Marked {result['summary']['successful']} of {result['summary']['total_requested']} students"
    )


@attendance_bp.route('/session/<int:session_id>', methods=['GET'])
@teacher_required
def get_session_attendance(session_id):
    """Records of one session date; unrecorded enrollments are listed separately."""
    session = owned_session(session_id)
    attendance_date = request_date(request.args.get('date'))

    records = AttendanceRecord.query.filter_by(
        session_id=session.id,
        attendance_date=attendance_date
    ).order_by(AttendanceRecord.student_id).all()

    recorded = {r.enrollment_id for r in records}
    unrecorded = [e.student_id for e in session.enrollments if e.is_active and e.id not in recorded]

    return success_response(data={
        'session_id': session.id,
        'date': attendance_date.isoformat(),
        'records': [r.to_dict() for r in records],
        'unrecorded_student_ids': unrecorded,
        'statistics': {
            status.value: len([r for r in records if r.status == status])
            for status in AttendanceStatus
        }
    })
