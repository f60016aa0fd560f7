"""Session configuration service."""
from typing import Dict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from checkin import db
from checkin.models.session import CourseSession, WeekDay
from checkin.models.teacher import Teacher
from checkin.utils.errors import ConfigurationError, ValidationError
from checkin.utils.helpers import parse_date, parse_time

UPDATABLE_FIELDS = (
    'name', 'location', 'day_of_week', 'start_date', 'end_date',
    'start_time', 'end_time', 'grace_period_minutes', 'proximity_radius_meters',
)


def _parse_weekday(value):
    if value is None or isinstance(value, WeekDay):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return WeekDay(value)
        except ValueError:
            pass
    elif isinstance(value, str) and value.upper() in WeekDay.__members__:
        return WeekDay[value.upper()]
    raise ValidationError(f"Invalid day_of_week: {value}")


def _coerce(field: str, value):
    try:
        if field in ('start_date', 'end_date'):
            return parse_date(value)
        if field in ('start_time', 'end_time'):
            return parse_time(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")
    if field == 'day_of_week':
        return _parse_weekday(value)
    if field == 'name' and (not value or not str(value).strip()):
        raise ValidationError("Session name is required")
    return value


class SessionService:
    """Service for creating and configuring course sessions."""

    @staticmethod
    def _check_schedule(session: CourseSession) -> None:
        if session.start_date and session.end_date and session.end_date < session.start_date:
            raise ConfigurationError("end_date must not be before start_date")
        if (session.start_time is None) != (session.end_time is None):
            raise ConfigurationError("start_time and end_time must be set together")

    @staticmethod
    def create_session(teacher: Teacher, data: Dict) -> CourseSession:
        if teacher is None:
            raise ValidationError("Teacher not found")

        session = CourseSession(teacher_id=teacher.id)
        session.grace_period_minutes = data.get(
            'grace_period_minutes', current_app.config.get('DEFAULT_GRACE_PERIOD_MINUTES', 15)
        )
        session.proximity_radius_meters = data.get(
            'proximity_radius_meters', current_app.config.get('DEFAULT_PROXIMITY_RADIUS_METERS', 50)
        )
        for field in UPDATABLE_FIELDS:
            if field in data and field not in ('grace_period_minutes', 'proximity_radius_meters'):
                setattr(session, field, _coerce(field, data[field]))

        if not session.name:
            raise ValidationError("Session name is required")
        SessionService._check_schedule(session)

        try:
            db.session.add(session)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        current_app.logger.info('Created session %s (%s) for teacher %s',
                                session.id, session.name, teacher.id)
        return session

    @staticmethod
    def update_session(session: CourseSession, data: Dict) -> CourseSession:
        """Apply a partial update; rejected changes leave the session untouched."""
        try:
            for field in UPDATABLE_FIELDS:
                if field in data:
                    setattr(session, field, _coerce(field, data[field]))
            SessionService._check_schedule(session)
        except ValidationError:
            db.session.rollback()
            raise

        db.session.commit()
        current_app.logger.info('Updated session %s: %s', session.id,
                                ', '.join(f for f in UPDATABLE_FIELDS if f in data))
        return session
