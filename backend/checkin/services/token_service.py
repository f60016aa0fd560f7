"""Check-in token issuance, validation and invalidation."""
import base64
import io
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

import qrcode
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from checkin import db
from checkin.models.session import CourseSession
from checkin.models.token import CheckInToken, TokenKind
from checkin.models.user import User
from checkin.utils import helpers
from checkin.utils.errors import (SessionNotScheduled, TokenExpired,
                                  TokenInvalidated, TokenNotFound)


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of a successful validation: the bound (session, date)."""
    token: str
    session_id: int
    attendance_date: date
    kind: TokenKind
    expires_at: datetime
    checked_at: datetime


class TokenService:
    """Service for check-in token operations."""

    @staticmethod
    def compute_expiry(session: CourseSession, attendance_date: date, now: datetime) -> datetime:
        """Expiry for a token opened at ``now``.

        With a known start time: ``max(start, now) + grace + buffer``.
        Otherwise a flat fallback window from ``now``.
        """
        window = session.window_for(attendance_date)
        if window is None:
            fallback = current_app.config.get('CHECKIN_TOKEN_FALLBACK_MINUTES', 120)
            return now + timedelta(minutes=fallback)

        buffer_minutes = current_app.config.get('CHECKIN_TOKEN_BUFFER_MINUTES', 30)
        opens_at = max(window[0], now)
        return opens_at + timedelta(minutes=session.grace_period_minutes + buffer_minutes)

    @staticmethod
    def issue(session: CourseSession, attendance_date: date, issuer: Optional[User] = None,
              kind: TokenKind = TokenKind.QR_CODE, now: datetime = None) -> CheckInToken:
        """Open a check-in window for (session, date)."""
        if not session.is_active_on(attendance_date):
            raise SessionNotScheduled(
                f"Session '{session.name}' is not active on {attendance_date.isoformat()}"
            )
        if not session.meets_on(attendance_date):
            current_app.logger.warning(
                'Issuing token for session %s on %s which is not its scheduled weekday',
                session.id, attendance_date
            )

        now = now or helpers.local_now()
        token = CheckInToken(
            token=CheckInToken.generate_token(),
            session_id=session.id,
            attendance_date=attendance_date,
            kind=kind,
            expires_at=TokenService.compute_expiry(session, attendance_date, now),
            is_valid=True,
            used_count=0,
            issued_by=issuer.id if issuer else None,
        )
        try:
            db.session.add(token)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        current_app.logger.info(
            'Issued %s token for session %s on %s (expires %s) by %s',
            kind.value, session.id, attendance_date, token.expires_at.isoformat(),
            issuer.label if issuer else 'system'
        )
        return token

    @staticmethod
    def validate(token_string: str, now: datetime = None) -> TokenValidation:
        """Validate a presented token and count the use.

        ``now`` is captured once, before the lookup, and every later
        decision in the check-in flow reuses it.
        """
        now = now or helpers.local_now()

        record = None
        if token_string:
            record = CheckInToken.query.filter_by(token=token_string).first()
        if record is None:
            raise TokenNotFound()

        if record.is_expired(now):
            raise TokenExpired(
                f"Check-in link expired at {record.expires_at.strftime('%H:%M')}. "
                "Please ask your teacher to generate a new one."
            )
        if not record.is_valid:
            raise TokenInvalidated()

        validation = TokenValidation(
            token=record.token,
            session_id=record.session_id,
            attendance_date=record.attendance_date,
            kind=record.kind,
            expires_at=record.expires_at,
            checked_at=now,
        )
        TokenService._count_use(record.id)
        return validation

    @staticmethod
    def _count_use(token_id: int) -> None:
        """Audit counter only; a failed increment never blocks admission."""
        try:
            CheckInToken.query.filter_by(id=token_id).update(
                {CheckInToken.used_count: CheckInToken.used_count + 1},
                synchronize_session=False
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.warning('Could not count use of token %s: %s', token_id, e)

    @staticmethod
    def invalidate(token_string: str, actor: Optional[User] = None, now: datetime = None) -> CheckInToken:
        """Close a token's window; irreversible."""
        record = CheckInToken.query.filter_by(token=token_string).first() if token_string else None
        if record is None:
            raise TokenNotFound()

        if record.is_valid:
            record.is_valid = False
            record.invalidated_at = now or helpers.local_now()
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise
            current_app.logger.info(
                'Token for session %s on %s invalidated by %s',
                record.session_id, record.attendance_date, actor.label if actor else 'system'
            )
        return record

    @staticmethod
    def close_window(session_id: int, attendance_date: date, actor: Optional[User] = None,
                     now: datetime = None) -> int:
        """Invalidate every still-valid token of (session, date)."""
        now = now or helpers.local_now()
        try:
            count = CheckInToken.query.filter_by(
                session_id=session_id,
                attendance_date=attendance_date,
                is_valid=True
            ).update({'is_valid': False, 'invalidated_at': now}, synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        current_app.logger.info(
            'Closed check-in for session %s on %s (%d tokens) by %s',
            session_id, attendance_date, count, actor.label if actor else 'system'
        )
        return count

    @staticmethod
    def current_token(session_id: int, attendance_date: date, kind: TokenKind = None,
                      now: datetime = None) -> Optional[CheckInToken]:
        """Newest live token for (session, date).

        Several tokens may be live at once; hosts are only ever shown this one.
        """
        now = now or helpers.local_now()
        query = CheckInToken.query.filter(
            CheckInToken.session_id == session_id,
            CheckInToken.attendance_date == attendance_date,
            CheckInToken.is_valid.is_(True),
            CheckInToken.expires_at > now,
        )
        if kind is not None:
            query = query.filter(CheckInToken.kind == kind)
        return query.order_by(CheckInToken.created_at.desc(), CheckInToken.id.desc()).first()

    @staticmethod
    def checkin_url(token: CheckInToken) -> str:
        base_url = current_app.config.get('CHECKIN_BASE_URL', '').rstrip('/')
        path = 'photo-checkin' if token.kind == TokenKind.PHOTO else 'checkin'
        return f"{base_url}/{path}/{token.token}"

    @staticmethod
    def render_qr(data: str) -> str:
        """PNG QR code for ``data`` as a data URI."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
