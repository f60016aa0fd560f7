"""Attendance record: one resolved outcome per (enrollment, date)."""
import enum

from checkin import db
from checkin.models.base import BaseModel


class AttendanceStatus(enum.Enum):
    ON_TIME = 'on time'
    LATE = 'late'
    ABSENT = 'absent'
    EXCUSED = 'excused'
    NOT_ENROLLED = 'not enrolled'


class CheckInMethod(enum.Enum):
    QR_CODE = 'qr_code'
    PHOTO = 'photo'
    MANUAL = 'manual'
    BULK = 'bulk'


class AttendanceRecord(BaseModel):
    """Attendance record with check-in metadata.

    Absence is never written by a check-in: an enrollment with no record
    for a date that has fully elapsed is absent by omission.
    """

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('enrollment_id', 'attendance_date', name='uq_attendance_enrollment_date'),
        db.CheckConstraint('late_minutes IS NULL OR late_minutes >= 0', name='check_late_minutes_positive'),
        db.Index('idx_attendance_session_date', 'session_id', 'attendance_date'),
    )

    enrollment_id = db.Column(db.Integer, db.ForeignKey('enrollments.id'), nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False)
    attendance_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.Enum(AttendanceStatus), nullable=False)
    late_minutes = db.Column(db.Integer, nullable=True)
    early_minutes = db.Column(db.Integer, nullable=True)
    excuse_reason = db.Column(db.String(100), nullable=True)

    # Check-in metadata
    check_in_time = db.Column(db.DateTime, nullable=True)
    check_in_method = db.Column(db.Enum(CheckInMethod), nullable=True)
    gps_latitude = db.Column(db.Float, nullable=True)
    gps_longitude = db.Column(db.Float, nullable=True)
    gps_accuracy = db.Column(db.Float, nullable=True)
    distance_from_host = db.Column(db.Float, nullable=True)
    host_address = db.Column(db.Text, nullable=True)

    # Reporting annotation, never used for admission
    score_weight = db.Column(db.Float, nullable=True)
    bracket_name = db.Column(db.String(50), nullable=True)

    marked_by = db.Column(db.String(255), nullable=True)
    marked_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship('Student')

    def to_dict(self):
        data = super().to_dict()
        data['student'] = self.student.name if self.student else None
        return data

    def __repr__(self):
        return f'<AttendanceRecord {self.enrollment_id}@{self.attendance_date}>'
