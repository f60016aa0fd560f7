"""Base model class with common functionality."""
import enum
from datetime import date, datetime, time
from typing import Any, Dict

from checkin import db
from checkin.utils.helpers import utcnow


class BaseModel(db.Model):
    """Base model class with common fields and methods."""

    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def save(self) -> 'BaseModel':
        """Save instance to database."""
        db.session.add(self)
        db.session.commit()
        return self

    def delete(self) -> None:
        """Delete instance from database."""
        db.session.delete(self)
        db.session.commit()

    def update(self, **kwargs) -> 'BaseModel':
        """Update instance with provided data."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

        self.updated_at = utcnow()
        db.session.commit()
        return self

    def to_dict(self, exclude: list = None) -> Dict[str, Any]:
        """Convert instance to dictionary."""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            key = column.name
            if key not in exclude:
                value = getattr(self, key)
                if isinstance(value, (datetime, date, time)):
                    value = value.isoformat()
                elif isinstance(value, enum.Enum):
                    value = value.value
                result[key] = value

        return result

    @classmethod
    def get_or_404(cls, id: int) -> 'BaseModel':
        """Get instance by ID or raise 404."""
        return db.get_or_404(cls, id)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.id}>'


class AddressMixin:
    """Address and persisted coordinates of a person who can host a session.

    Coordinates belong to the person, not to a session date, and are reused
    by every session the person hosts once they are set.
    """

    address = db.Column(db.Text, nullable=True)
    address_latitude = db.Column(db.Float, nullable=True)
    address_longitude = db.Column(db.Float, nullable=True)

    @property
    def coordinates(self):
        if self.address_latitude is None or self.address_longitude is None:
            return None
        return self.address_latitude, self.address_longitude

    @property
    def has_location(self) -> bool:
        return bool(self.address and self.address.strip()) or self.coordinates is not None
