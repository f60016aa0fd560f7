"""Role decorators for blueprint endpoints.

The identity layer only answers "who is calling and in what role"; the
decorators stash the resolved user on ``flask.g`` so endpoints can stamp
``issued_by`` / ``marked_by`` without a second lookup.
"""
from functools import wraps

from flask import abort, g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from checkin import db
from checkin.models.session import CourseSession
from checkin.models.user import User, UserRole
from checkin.utils.helpers import error_response


def current_user() -> User:
    """User resolved by the last role decorator."""
    return g.current_user


def _role_required(allowed_roles, message):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = db.session.get(User, int(get_jwt_identity()))

            if not user or not user.is_active:
                return error_response("User not found", 404)

            if user.role not in allowed_roles:
                return error_response(message, 403)

            g.current_user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = _role_required({UserRole.ADMIN}, "Admin access required")
teacher_required = _role_required({UserRole.TEACHER, UserRole.ADMIN}, "Teacher access required")
student_required = _role_required({UserRole.STUDENT}, "Student access required")


def owned_session(session_id: int):
    """Session the current teacher may manage; admins may manage any."""
    session = CourseSession.get_or_404(session_id)
    user = current_user()
    if user.role == UserRole.ADMIN:
        return session

    profile = user.teacher_profile
    if profile is None or profile.id != session.teacher_id:
        abort(403, description="You do not manage this session")
    return session
