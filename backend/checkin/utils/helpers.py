"""Helper functions for the application."""
from datetime import date, datetime, time, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from flask import current_app, jsonify

from checkin.utils.errors import ValidationError


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, **details):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    body.update(details)
    return jsonify(body), status_code


def utcnow() -> datetime:
    """Naive UTC timestamp for bookkeeping columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_now() -> datetime:
    """Authoritative server clock in the session timezone (naive wall-clock)."""
    tz = ZoneInfo(current_app.config.get('SESSION_TIMEZONE', 'UTC'))
    return datetime.now(tz).replace(tzinfo=None)


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date (YYYY-MM-DD); None passes through."""
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def parse_time(value: Optional[str]) -> Optional[time]:
    """Parse HH:MM or HH:MM:SS; None passes through."""
    if value is None or isinstance(value, time):
        return value
    return time.fromisoformat(value)


def request_date(value, field: str = 'date') -> date:
    """Date from request input, defaulting to today in the session timezone."""
    if value in (None, ''):
        return local_now().date()
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value}")
