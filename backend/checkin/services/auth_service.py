"""Authentication service for user management."""
from flask_jwt_extended import create_access_token, create_refresh_token
from sqlalchemy.exc import SQLAlchemyError

from checkin import db
from checkin.models.user import User
from checkin.utils.helpers import utcnow
from checkin.utils.validators import Validator


class AuthService:
    @staticmethod
    def login(email: str, password: str) -> tuple:
        """Authenticate user and return tokens."""
        if not email or not password:
            return None, "Email and password are required"

        if not Validator.validate_email(email):
            return None, "Invalid email format"

        user = User.query.filter_by(email=email.lower().strip()).first()

        if not user or not user.check_password(password):
            return None, "Invalid email or password"

        if not user.is_active:
            return None, "Account is deactivated"

        try:
            user.last_login = utcnow()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        # JWT subjects must be strings
        access_token = create_access_token(identity=str(user.id))
        refresh_token = create_refresh_token(identity=str(user.id))

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user": AuthService.profile(user)
        }, None

    @staticmethod
    def profile(user: User) -> dict:
        """User plus whichever teacher/student profile it owns."""
        data = user.to_dict()
        if user.teacher_profile is not None:
            data['teacher_id'] = user.teacher_profile.id
        if user.student_profile is not None:
            data['student_id'] = user.student_profile.id
        return data

    @staticmethod
    def refresh_token(user_id: int) -> tuple:
        """Generate new access token."""
        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return None, "User not found or inactive"

        return {
            "access_token": create_access_token(identity=str(user.id)),
            "user": AuthService.profile(user)
        }, None
