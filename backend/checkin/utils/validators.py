"""Validation utilities for the application."""
import re
from typing import Any, Dict, List, Optional

from checkin.utils.errors import ConfigurationError, ValidationError

MIN_GRACE_PERIOD_MINUTES = 0
MAX_GRACE_PERIOD_MINUTES = 60


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email:
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email))

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] in (None, ''):
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def require_fields(data: Optional[Dict], required_fields: List[str]) -> Dict:
        """Raise ValidationError unless every field is present."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")
        result = Validator.validate_required_fields(data, required_fields)
        if not result['is_valid']:
            raise ValidationError("; ".join(result['errors']))
        return data

    @staticmethod
    def validate_grace_period(minutes) -> int:
        """Grace period must be a whole number of minutes in [0, 60]."""
        if isinstance(minutes, bool) or not isinstance(minutes, int):
            raise ConfigurationError("Grace period must be a whole number of minutes")
        if minutes < MIN_GRACE_PERIOD_MINUTES or minutes > MAX_GRACE_PERIOD_MINUTES:
            raise ConfigurationError(
                f"Grace period must be between {MIN_GRACE_PERIOD_MINUTES} "
                f"and {MAX_GRACE_PERIOD_MINUTES} minutes"
            )
        return minutes

    @staticmethod
    def validate_radius(meters) -> Optional[int]:
        """Proximity radius is a positive number of meters, or None to disable."""
        if meters is None:
            return None
        if isinstance(meters, bool) or not isinstance(meters, (int, float)) or meters <= 0:
            raise ConfigurationError("Proximity radius must be a positive number of meters or null")
        return int(meters)
