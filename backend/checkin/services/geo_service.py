"""Great-circle distance between GPS points."""
import math
from typing import Optional

from checkin.utils.errors import ValidationError

EARTH_RADIUS_METERS = 6371000


class GeoService:
    """Service for GPS distance calculations."""

    @staticmethod
    def calculate_distance(lat1: Optional[float], lon1: Optional[float],
                           lat2: Optional[float], lon2: Optional[float]) -> Optional[float]:
        """Haversine distance in meters, or None when any coordinate is missing.

        None means "unknown" and must never be read as "within range".
        """
        if lat1 is None or lon1 is None or lat2 is None or lon2 is None:
            return None

        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon / 2) ** 2)
        # rounding can push a a hair outside [0, 1] near antipodes
        a = min(1.0, max(0.0, a))
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    @staticmethod
    def validate_coordinates(latitude, longitude) -> None:
        """Raise ValidationError for non-numeric or out-of-range coordinates."""
        for value, name in ((latitude, 'latitude'), (longitude, 'longitude')):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number")
        if not -90 <= latitude <= 90:
            raise ValidationError("latitude must be between -90 and 90")
        if not -180 <= longitude <= 180:
            raise ValidationError("longitude must be between -180 and 180")
