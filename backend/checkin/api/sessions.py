"""Session configuration, hosting and per-session brackets."""
from flask import Blueprint, abort, request

from checkin import db
from checkin.models.session import HostType
from checkin.models.teacher import Teacher
from checkin.models.user import UserRole
from checkin.services.late_bracket_service import LateBracketService, brackets_from_payload
from checkin.services.proximity_service import ProximityService
from checkin.services.session_service import SessionService
from checkin.utils.decorators import current_user, owned_session, teacher_required
from checkin.utils.errors import ValidationError
from checkin.utils.helpers import request_date, success_response
from checkin.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)


def _host_type(value) -> HostType:
    try:
        return HostType(str(value).lower())
    except ValueError:
        raise ValidationError("host_type must be 'student' or 'teacher'")


@sessions_bp.route('', methods=['POST'])
@teacher_required
def create_session():
    data = Validator.require_fields(request.get_json(silent=True), ['name'])
    user = current_user()

    if user.role == UserRole.ADMIN and data.get('teacher_id') is not None:
        teacher = db.session.get(Teacher, data['teacher_id'])
    else:
        teacher = user.teacher_profile

    session = SessionService.create_session(teacher, data)
    return success_response(data=session.to_dict(), message='Session created', status_code=201)


@sessions_bp.route('/<int:session_id>', methods=['GET'])
@teacher_required
def get_session(session_id):
    session = owned_session(session_id)
    data = session.to_dict()
    data['enrolled_count'] = session.enrollments.count()
    return success_response(data=data)


@sessions_bp.route('/<int:session_id>', methods=['PATCH'])
@teacher_required
def update_session(session_id):
    session = owned_session(session_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be JSON")

    session = SessionService.update_session(session, data)
    return success_response(data=session.to_dict(), message='Session updated')


@sessions_bp.route('/<int:session_id>/hosts', methods=['POST'])
@teacher_required
def assign_host(session_id):
    """Assign the host for one date of the session."""
    session = owned_session(session_id)
    data = Validator.require_fields(request.get_json(silent=True), ['host_type', 'host_id'])

    assignment = ProximityService.assign_host(
        session,
        request_date(data.get('date')),
        _host_type(data['host_type']),
        data['host_id'],
        address=data.get('address'),
    )
    return success_response(data=assignment.to_dict(), message='Host assigned', status_code=201)


@sessions_bp.route('/<int:session_id>/host', methods=['GET'])
@teacher_required
def effective_host(session_id):
    session = owned_session(session_id)
    host = ProximityService.resolve_effective_host(session, request_date(request.args.get('date')))
    return success_response(data=host.to_dict() if host else None)


@sessions_bp.route('/hosts/<host_type>/<int:host_id>/coordinates', methods=['PUT'])
@teacher_required
def update_host_coordinates(host_type, host_id):
    """Store a host's coordinates; reused by every session they host."""
    data = Validator.require_fields(request.get_json(silent=True), ['latitude', 'longitude'])
    kind = _host_type(host_type)

    user = current_user()
    if kind == HostType.TEACHER and user.role != UserRole.ADMIN:
        profile = user.teacher_profile
        if profile is None or profile.id != host_id:
            abort(403, description="Teachers may only set their own coordinates")

    person = ProximityService.update_host_coordinates(
        kind, host_id, data['latitude'], data['longitude'], address=data.get('address')
    )
    return success_response(data={
        'host_type': kind.value,
        'host_id': person.id,
        'address': person.address,
        'latitude': person.address_latitude,
        'longitude': person.address_longitude,
    }, message='Coordinates saved')


@sessions_bp.route('/<int:session_id>/brackets', methods=['GET'])
@teacher_required
def get_session_brackets(session_id):
    session = owned_session(session_id)
    return success_response(data={
        'session': [b.to_dict() for b in LateBracketService.list_brackets(session.id)],
        'global': [b.to_dict() for b in LateBracketService.list_brackets(None)],
    })


@sessions_bp.route('/<int:session_id>/brackets', methods=['PUT'])
@teacher_required
def replace_session_brackets(session_id):
    """Replace this session's bracket overrides; an empty list clears them."""
    session = owned_session(session_id)
    data = Validator.require_fields(request.get_json(silent=True), ['brackets'])
    brackets = LateBracketService.replace_brackets(
        session.id, brackets_from_payload(data['brackets'])
    )
    return success_response(data=[b.to_dict() for b in brackets], message='Brackets updated')
