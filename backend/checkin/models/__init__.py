"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .teacher import Teacher
from .student import Student
from .session import CourseSession, SessionDateHost, WeekDay, HostType
from .enrollment import Enrollment, EnrollmentStatus
from .token import CheckInToken, TokenKind
from .late_bracket import LateBracket
from .attendance import AttendanceRecord, AttendanceStatus, CheckInMethod

__all__ = [
    'BaseModel', 'User', 'UserRole', 'Teacher', 'Student',
    'CourseSession', 'SessionDateHost', 'WeekDay', 'HostType',
    'Enrollment', 'EnrollmentStatus', 'CheckInToken', 'TokenKind',
    'LateBracket', 'AttendanceRecord', 'AttendanceStatus', 'CheckInMethod'
]
