"""Enrollment of a student in a session."""
import enum

from checkin import db
from checkin.models.base import BaseModel


class EnrollmentStatus(enum.Enum):
    ACTIVE = 'active'
    PENDING = 'pending'
    COMPLETED = 'completed'
    DROPPED = 'dropped'


class Enrollment(BaseModel):
    """Link between a student and a session.

    ``can_host`` may only be true while the enrollment is active; writes go
    through ``EnrollmentService`` which enforces this, and the CHECK
    constraint below is the storage-level backstop.
    """

    __tablename__ = 'enrollments'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'session_id', name='uq_enrollment_student_session'),
        db.CheckConstraint("NOT can_host OR status = 'ACTIVE'", name='check_can_host_only_active'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('students.id'), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)
    status = db.Column(db.Enum(EnrollmentStatus), nullable=False, default=EnrollmentStatus.ACTIVE)
    can_host = db.Column(db.Boolean, nullable=False, default=False)
    host_date = db.Column(db.Date, nullable=True)

    attendance_records = db.relationship('AttendanceRecord', backref='enrollment', lazy='dynamic',
                                         cascade='all')

    @property
    def is_active(self) -> bool:
        return self.status == EnrollmentStatus.ACTIVE

    def __repr__(self):
        return f'<Enrollment student={self.student_id} session={self.session_id}>'
