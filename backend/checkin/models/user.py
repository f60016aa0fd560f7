"""User model for authentication and authorization."""
from enum import Enum

from werkzeug.security import check_password_hash, generate_password_hash

from checkin import db
from checkin.models.base import BaseModel


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'


class User(BaseModel):
    """Login account; profiles (Teacher/Student) link back to it."""

    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    def is_teacher(self) -> bool:
        """Teachers and admins may host sessions and issue tokens."""
        return self.role in (UserRole.TEACHER, UserRole.ADMIN)

    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    @property
    def label(self) -> str:
        """Stamp written to issued_by / marked_by fields."""
        return f"{self.email} ({self.role.value})"

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        exclude = (exclude or []) + ['password_hash']
        return super().to_dict(exclude=exclude)

    def __repr__(self) -> str:
        return f'<User {self.email}>'
