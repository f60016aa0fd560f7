"""Recurring course sessions and their per-date host assignments."""
import enum
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import validates

from checkin import db
from checkin.models.base import BaseModel
from checkin.utils.validators import Validator


class WeekDay(enum.Enum):
    """Days of the week, numbered like ``date.weekday()``."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class HostType(enum.Enum):
    STUDENT = 'student'
    TEACHER = 'teacher'


class CourseSession(BaseModel):
    """A recurring meeting of a course, owned by a teacher."""

    __tablename__ = 'sessions'
    __table_args__ = (
        db.CheckConstraint('grace_period_minutes >= 0 AND grace_period_minutes <= 60',
                           name='check_grace_period_range'),
        db.CheckConstraint('proximity_radius_meters IS NULL OR proximity_radius_meters > 0',
                           name='check_proximity_radius_positive'),
    )

    name = db.Column(db.String(255), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('teachers.id'), nullable=False)
    location = db.Column(db.String(255), nullable=True)

    # Schedule
    day_of_week = db.Column(db.Enum(WeekDay), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)

    # Check-in rules
    grace_period_minutes = db.Column(db.Integer, nullable=False, default=15)
    proximity_radius_meters = db.Column(db.Integer, nullable=True, default=50)

    enrollments = db.relationship('Enrollment', backref='session', lazy='dynamic',
                                  cascade='all')
    tokens = db.relationship('CheckInToken', backref='session', lazy='dynamic',
                             cascade='all')
    date_hosts = db.relationship('SessionDateHost', backref='session', lazy='dynamic',
                                 cascade='all')
    late_brackets = db.relationship('LateBracket', backref='session', lazy='dynamic',
                                    cascade='all')
    attendance_records = db.relationship('AttendanceRecord', backref='session', lazy='dynamic',
                                         cascade='all')

    @validates('grace_period_minutes')
    def _validate_grace_period(self, key, value):
        return Validator.validate_grace_period(value)

    @validates('proximity_radius_meters')
    def _validate_radius(self, key, value):
        return Validator.validate_radius(value)

    def is_active_on(self, day: date) -> bool:
        """True when ``day`` falls inside the session's date range."""
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True

    def meets_on(self, day: date) -> bool:
        """Active on ``day`` and, when a weekday is set, scheduled on it."""
        if not self.is_active_on(day):
            return False
        return self.day_of_week is None or self.day_of_week.value == day.weekday()

    def window_for(self, day: date) -> Optional[Tuple[datetime, datetime]]:
        """Scheduled (start, end) instants on ``day``; None when times are unknown."""
        if self.start_time is None or self.end_time is None:
            return None
        start = datetime.combine(day, self.start_time)
        end = datetime.combine(day, self.end_time)
        if end <= start:
            end += timedelta(days=1)
        return start, end

    def to_dict(self):
        data = super().to_dict()
        data['teacher'] = self.teacher.name if self.teacher else None
        data['day_of_week'] = self.day_of_week.name if self.day_of_week else None
        return data

    def __repr__(self):
        return f'<CourseSession {self.name}>'


class SessionDateHost(BaseModel):
    """Explicit host (student or teacher) for one session date."""

    __tablename__ = 'session_date_hosts'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'attendance_date', name='uq_session_date_host'),
    )

    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)
    attendance_date = db.Column(db.Date, nullable=False)
    host_type = db.Column(db.Enum(HostType), nullable=False, default=HostType.STUDENT)
    host_id = db.Column(db.Integer, nullable=True)
    host_address = db.Column(db.Text, nullable=False)
