"""Student profile."""
from checkin import db
from checkin.models.base import AddressMixin, BaseModel


class Student(AddressMixin, BaseModel):
    """Student who enrolls in sessions and may host one at home."""

    __tablename__ = 'students'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)

    user = db.relationship('User', backref=db.backref('student_profile', uselist=False))
    enrollments = db.relationship('Enrollment', backref='student', lazy='dynamic',
                                  cascade='all')

    def __repr__(self):
        return f'<Student {self.name}>'
