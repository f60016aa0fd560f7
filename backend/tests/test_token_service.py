"""Tests for check-in token issuance and validation."""
from datetime import date, datetime, timedelta

import pytest

from checkin import db
from checkin.models.token import CheckInToken, TokenKind
from checkin.services.token_service import TokenService
from checkin.utils.errors import (SessionNotScheduled, TokenExpired, TokenInvalidated,
                                  TokenNotFound)

from conftest import SESSION_DATE


def at(hour, minute, day=SESSION_DATE):
    return datetime.combine(day, datetime.min.time()).replace(hour=hour, minute=minute)


class TestIssue:
    def test_expiry_counts_from_scheduled_start(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        # 09:00 start + 10 grace + 30 buffer
        assert token.expires_at == at(9, 40)
        assert token.is_valid
        assert token.used_count == 0

    def test_expiry_counts_from_now_when_issued_late(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(9, 30))
        assert token.expires_at == at(10, 10)

    def test_session_without_times_uses_fallback_window(self, make_session):
        session = make_session(start_time=None, end_time=None)
        token = TokenService.issue(session, SESSION_DATE, now=at(14, 0))
        assert token.expires_at == at(16, 0)

    def test_date_outside_session_range_is_refused(self, course_session):
        with pytest.raises(SessionNotScheduled):
            TokenService.issue(course_session, date(2024, 8, 5), now=at(8, 0))

    def test_identifiers_are_unique_and_long(self, course_session):
        tokens = {TokenService.issue(course_session, SESSION_DATE, now=at(8, 0)).token for _ in range(5)}
        assert len(tokens) == 5
        assert all(len(t) >= 43 for t in tokens)

    def test_issuer_is_recorded(self, course_session, teacher):
        token = TokenService.issue(course_session, SESSION_DATE, issuer=teacher.user, now=at(8, 0))
        assert token.issued_by == teacher.user_id


class TestValidate:
    def test_valid_before_expiry_counts_use(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))

        result = TokenService.validate(token.token, now=at(9, 39))

        assert result.session_id == course_session.id
        assert result.attendance_date == SESSION_DATE
        assert result.kind == TokenKind.QR_CODE
        assert result.checked_at == at(9, 39)
        assert db.session.get(CheckInToken, token.id).used_count == 1

        TokenService.validate(token.token, now=at(9, 39))
        assert db.session.get(CheckInToken, token.id).used_count == 2

    def test_expired_at_expiry_instant(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        with pytest.raises(TokenExpired):
            TokenService.validate(token.token, now=token.expires_at)
        with pytest.raises(TokenExpired):
            TokenService.validate(token.token, now=token.expires_at + timedelta(hours=1))

    def test_invalidated_before_expiry(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        TokenService.invalidate(token.token, now=at(9, 0))

        with pytest.raises(TokenInvalidated):
            TokenService.validate(token.token, now=at(9, 1))

    def test_unknown_token(self, app):
        with pytest.raises(TokenNotFound):
            TokenService.validate('not-a-real-token', now=at(9, 0))
        with pytest.raises(TokenNotFound):
            TokenService.validate('', now=at(9, 0))

    def test_rejections_do_not_count_use(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        with pytest.raises(TokenExpired):
            TokenService.validate(token.token, now=at(12, 0))
        assert db.session.get(CheckInToken, token.id).used_count == 0


class TestInvalidation:
    def test_invalidate_is_idempotent(self, course_session):
        token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        first = TokenService.invalidate(token.token, now=at(9, 0))
        second = TokenService.invalidate(token.token, now=at(9, 5))
        assert first.is_valid is False
        assert second.invalidated_at == at(9, 0)

    def test_invalidate_unknown_token(self, app):
        with pytest.raises(TokenNotFound):
            TokenService.invalidate('missing')

    def test_close_window_invalidates_all_live_tokens(self, course_session):
        tokens = [TokenService.issue(course_session, SESSION_DATE, now=at(8, 0)) for _ in range(3)]
        TokenService.invalidate(tokens[0].token, now=at(8, 30))

        assert TokenService.close_window(course_session.id, SESSION_DATE, now=at(9, 0)) == 2
        assert TokenService.current_token(course_session.id, SESSION_DATE, now=at(9, 0)) is None


class TestCurrentToken:
    def test_newest_live_token_is_current(self, course_session):
        TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        newest = TokenService.issue(course_session, SESSION_DATE, now=at(8, 5))

        current = TokenService.current_token(course_session.id, SESSION_DATE, now=at(8, 10))
        assert current.token == newest.token

    def test_expired_tokens_are_not_current(self, course_session):
        TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
        assert TokenService.current_token(course_session.id, SESSION_DATE, now=at(9, 40)) is None

    def test_filter_by_kind(self, course_session):
        photo = TokenService.issue(course_session, SESSION_DATE, kind=TokenKind.PHOTO, now=at(8, 0))
        TokenService.issue(course_session, SESSION_DATE, now=at(8, 1))

        current = TokenService.current_token(course_session.id, SESSION_DATE,
                                             kind=TokenKind.PHOTO, now=at(8, 10))
        assert current.token == photo.token


def test_checkin_url_and_qr(course_session):
    token = TokenService.issue(course_session, SESSION_DATE, now=at(8, 0))
    url = TokenService.checkin_url(token)
    assert url == f'http://testserver/checkin/{token.token}'
    assert TokenService.render_qr(url).startswith('data:image/png;base64,')
