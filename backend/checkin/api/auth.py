"""Authentication API."""
from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from checkin import db, limiter
from checkin.models.user import User
from checkin.services.auth_service import AuthService
from checkin.utils.helpers import error_response, success_response

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Email/password login for every role."""
    data = request.get_json(silent=True)

    if not data:
        return error_response("Request body must be JSON", 400)

    email = str(data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        return error_response("Email and password are required", 400)

    result, error = AuthService.login(email, password)

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Login successful")


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def get_current_user():
    user = db.session.get(User, int(get_jwt_identity()))
    if not user:
        return error_response("User not found", 404)

    return success_response(data=AuthService.profile(user))


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    result, error = AuthService.refresh_token(int(get_jwt_identity()))

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Token refreshed")
