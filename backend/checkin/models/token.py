"""Time-bounded check-in tokens."""
import enum
import secrets
from datetime import datetime

from checkin import db
from checkin.models.base import BaseModel


class TokenKind(enum.Enum):
    """How the student proves presence with the token."""
    QR_CODE = 'qr_code'
    PHOTO = 'photo'


class CheckInToken(BaseModel):
    """Credential authorizing check-in for one (session, date)."""

    __tablename__ = 'checkin_tokens'
    __table_args__ = (
        db.Index('idx_checkin_tokens_session_date', 'session_id', 'attendance_date'),
    )

    token = db.Column(db.String(64), unique=True, nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False)
    attendance_date = db.Column(db.Date, nullable=False)
    kind = db.Column(db.Enum(TokenKind), nullable=False, default=TokenKind.QR_CODE)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_valid = db.Column(db.Boolean, nullable=False, default=True)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    issued_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    invalidated_at = db.Column(db.DateTime, nullable=True)

    issuer = db.relationship('User')

    @staticmethod
    def generate_token() -> str:
        """Opaque identifier with 256 bits of randomness."""
        return secrets.token_urlsafe(32)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def to_dict(self):
        return {
            'token': self.token,
            'session_id': self.session_id,
            'attendance_date': self.attendance_date.isoformat(),
            'kind': self.kind.value,
            'expires_at': self.expires_at.isoformat(),
            'is_valid': self.is_valid,
            'used_count': self.used_count,
        }
