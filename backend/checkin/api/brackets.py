"""Global late-bracket configuration."""
from flask import Blueprint, request

from checkin.services.late_bracket_service import (DEFAULT_BRACKETS, LateBracketService,
                                                   brackets_from_payload)
from checkin.utils.decorators import admin_required, teacher_required
from checkin.utils.helpers import success_response
from checkin.utils.validators import Validator

brackets_bp = Blueprint('brackets', __name__)


@brackets_bp.route('', methods=['GET'])
@teacher_required
def get_global_brackets():
    stored = LateBracketService.list_brackets(None)
    return success_response(data={
        'brackets': [b.to_dict() for b in (stored or DEFAULT_BRACKETS)],
        'is_default': not stored,
    })


@brackets_bp.route('', methods=['PUT'])
@admin_required
def replace_global_brackets():
    data = Validator.require_fields(request.get_json(silent=True), ['brackets'])
    brackets = LateBracketService.replace_brackets(
        None, brackets_from_payload(data['brackets'])
    )
    return success_response(data=[b.to_dict() for b in brackets], message='Global brackets updated')
