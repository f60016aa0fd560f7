"""Teacher profile."""
from checkin import db
from checkin.models.base import AddressMixin, BaseModel


class Teacher(AddressMixin, BaseModel):
    """Teacher who owns sessions; the default host when nobody else is assigned."""

    __tablename__ = 'teachers'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)

    user = db.relationship('User', backref=db.backref('teacher_profile', uselist=False))
    sessions = db.relationship('CourseSession', backref='teacher', lazy='dynamic')

    def __repr__(self):
        return f'<Teacher {self.name}>'
