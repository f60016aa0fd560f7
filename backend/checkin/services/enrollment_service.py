"""Enrollment management service."""
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from checkin import db
from checkin.models.enrollment import Enrollment, EnrollmentStatus
from checkin.models.session import CourseSession
from checkin.models.student import Student
from checkin.utils.errors import ValidationError


def _parse_status(value) -> EnrollmentStatus:
    if isinstance(value, EnrollmentStatus):
        return value
    try:
        return EnrollmentStatus(str(value).lower())
    except ValueError:
        allowed = ', '.join(s.value for s in EnrollmentStatus)
        raise ValidationError(f"Invalid enrollment status '{value}'. Allowed: {allowed}")


class EnrollmentService:
    """Service for managing enrollments."""

    @staticmethod
    def _clamp_can_host(enrollment: Enrollment, requested: bool) -> None:
        """Only active enrollments may host; anything else is stored as false."""
        if requested and not enrollment.is_active:
            current_app.logger.warning(
                'Ignoring can_host for enrollment of student %s in session %s with status %s',
                enrollment.student_id, enrollment.session_id, enrollment.status.value
            )
            requested = False
        enrollment.can_host = bool(requested)

    @staticmethod
    def create_enrollment(student_id: int, session_id: int, status=EnrollmentStatus.ACTIVE,
                          can_host: bool = False) -> Enrollment:
        """Enroll a student in a session."""
        if db.session.get(Student, student_id) is None:
            raise ValidationError(f"Student {student_id} not found")
        if db.session.get(CourseSession, session_id) is None:
            raise ValidationError(f"Session {session_id} not found")

        enrollment = Enrollment(
            student_id=student_id,
            session_id=session_id,
            status=_parse_status(status),
        )
        EnrollmentService._clamp_can_host(enrollment, can_host)

        try:
            db.session.add(enrollment)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ValidationError("Student is already enrolled in this session")

        current_app.logger.info('Enrolled student %s in session %s (%s)',
                                student_id, session_id, enrollment.status.value)
        return enrollment

    @staticmethod
    def update_enrollment(enrollment: Enrollment, status=None,
                          can_host: Optional[bool] = None) -> Enrollment:
        """Change status and/or host eligibility.

        Leaving the active status always revokes host eligibility.
        """
        if status is not None:
            enrollment.status = _parse_status(status)

        if can_host is None:
            enrollment.can_host = bool(enrollment.can_host) and enrollment.is_active
        else:
            EnrollmentService._clamp_can_host(enrollment, can_host)
        if not enrollment.can_host:
            enrollment.host_date = None

        db.session.commit()
        return enrollment
