"""Check-in token API for session hosts."""
from flask import Blueprint, jsonify, request

from checkin.models.token import CheckInToken, TokenKind
from checkin.services.token_service import TokenService
from checkin.utils.decorators import current_user, owned_session, teacher_required
from checkin.utils.errors import TokenNotFound, ValidationError
from checkin.utils.helpers import request_date, success_response
from checkin.utils.validators import Validator

tokens_bp = Blueprint('tokens', __name__)


def _token_kind(value) -> TokenKind:
    if value is None:
        return TokenKind.QR_CODE
    try:
        return TokenKind(str(value).lower())
    except ValueError:
        raise ValidationError("kind must be 'qr_code' or 'photo'")


def _token_payload(token: CheckInToken) -> dict:
    url = TokenService.checkin_url(token)
    data = token.to_dict()
    data['checkin_url'] = url
    data['qr_code'] = TokenService.render_qr(url)
    return data


@tokens_bp.route('', methods=['POST'])
@teacher_required
def issue_token():
    """Open a check-in window for (session, date) and return its QR code."""
    data = Validator.require_fields(request.get_json(silent=True), ['session_id'])
    session = owned_session(data['session_id'])

    token = TokenService.issue(
        session,
        request_date(data.get('date')),
        issuer=current_user(),
        kind=_token_kind(data.get('kind')),
    )
    return success_response(data=_token_payload(token), message='Check-in token issued', status_code=201)


@tokens_bp.route('/current', methods=['GET'])
@teacher_required
def get_current_token():
    session_id = request.args.get('session_id', type=int)
    if session_id is None:
        raise ValidationError("session_id is required")
    session = owned_session(session_id)

    kind = request.args.get('kind')
    token = TokenService.current_token(
        session.id,
        request_date(request.args.get('date')),
        kind=_token_kind(kind) if kind else None,
    )
    # data is always present; null means no live token
    return jsonify({
        'error': False,
        'message': 'Success' if token else 'No live check-in token',
        'data': _token_payload(token) if token else None,
    }), 200


@tokens_bp.route('/<token>/invalidate', methods=['POST'])
@teacher_required
def invalidate_token(token):
    record = CheckInToken.query.filter_by(token=token).first()
    if record is None:
        raise TokenNotFound()
    owned_session(record.session_id)

    record = TokenService.invalidate(token, actor=current_user())
    return success_response(data=record.to_dict(), message='Check-in token invalidated')


@tokens_bp.route('/close', methods=['POST'])
@teacher_required
def close_window():
    """Invalidate every live token of (session, date)."""
    data = Validator.require_fields(request.get_json(silent=True), ['session_id'])
    session = owned_session(data['session_id'])
    attendance_date = request_date(data.get('date'))

    closed = TokenService.close_window(session.id, attendance_date, actor=current_user())
    return success_response(data={
        'session_id': session.id,
        'date': attendance_date.isoformat(),
        'invalidated': closed,
    }, message='Check-in closed')
