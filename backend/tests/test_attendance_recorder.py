"""Tests for attendance upserts and manual marking."""
from datetime import date, datetime

import pytest

from checkin.models.attendance import AttendanceRecord, AttendanceStatus, CheckInMethod
from checkin.services import attendance_service
from checkin.services.attendance_service import AttendanceRecorder
from checkin.utils.errors import NotEnrolled, SessionNotScheduled, ValidationError

from conftest import SESSION_DATE

NOW = datetime(2024, 3, 4, 9, 30)


def record(enrollment, status, **kwargs):
    kwargs.setdefault('method', CheckInMethod.MANUAL)
    kwargs.setdefault('marked_by', 'teacher@example.com (teacher)')
    return AttendanceRecorder.record(enrollment, SESSION_DATE, status, now=NOW, **kwargs)


def test_resubmission_keeps_one_row_with_latest_status(enrollment):
    record(enrollment, AttendanceStatus.LATE, late_minutes=20)
    latest = record(enrollment, AttendanceStatus.EXCUSED, excuse_reason='Medical')

    rows = AttendanceRecord.query.filter_by(enrollment_id=enrollment.id).all()
    assert len(rows) == 1
    assert rows[0].id == latest.id
    assert rows[0].status == AttendanceStatus.EXCUSED
    assert rows[0].late_minutes is None
    assert rows[0].excuse_reason == 'Medical'
    assert rows[0].score_weight is None


def test_on_time_record_is_annotated(enrollment):
    saved = record(enrollment, AttendanceStatus.ON_TIME)
    assert saved.score_weight == 1.0
    assert saved.bracket_name == 'on time'
    assert saved.session_id == enrollment.session_id
    assert saved.student_id == enrollment.student_id


def test_late_record_uses_brackets(enrollment):
    saved = record(enrollment, AttendanceStatus.LATE, late_minutes=25)
    assert saved.late_minutes == 25
    assert saved.score_weight == 0.60
    assert saved.bracket_name == 'Significant'


def test_late_without_minutes_gets_fallback_weight(enrollment):
    saved = record(enrollment, AttendanceStatus.LATE)
    assert saved.late_minutes is None
    assert saved.score_weight == 0.50


def test_late_minutes_only_for_late(enrollment):
    with pytest.raises(ValidationError):
        record(enrollment, AttendanceStatus.ON_TIME, late_minutes=5)
    with pytest.raises(ValidationError):
        record(enrollment, AttendanceStatus.LATE, late_minutes=-1)
    assert AttendanceRecord.query.count() == 0


def test_excused_requires_reason(enrollment):
    with pytest.raises(ValidationError):
        record(enrollment, AttendanceStatus.EXCUSED)
    with pytest.raises(ValidationError):
        record(enrollment, AttendanceStatus.EXCUSED, excuse_reason='   ')


def test_date_outside_session_range(enrollment):
    with pytest.raises(SessionNotScheduled):
        AttendanceRecorder.record(enrollment, date(2025, 1, 6), AttendanceStatus.ON_TIME,
                                  method=CheckInMethod.MANUAL, marked_by='x', now=NOW)


def test_mark_requires_enrollment(course_session, make_student):
    outsider = make_student('outsider@example.com', 'Outsider')
    with pytest.raises(NotEnrolled):
        AttendanceRecorder.mark(course_session, outsider.id, SESSION_DATE,
                                AttendanceStatus.ABSENT, marked_by='teacher', now=NOW)


def test_mark_records_method_and_marker(enrollment, course_session, student):
    saved = AttendanceRecorder.mark(course_session, student.id, SESSION_DATE,
                                    AttendanceStatus.ABSENT, marked_by='teacher@example.com (teacher)',
                                    now=NOW)
    assert saved.check_in_method == CheckInMethod.MANUAL
    assert saved.marked_by == 'teacher@example.com (teacher)'
    assert saved.marked_at == NOW


def test_mark_bulk_reports_each_entry(enrollment, course_session, student, make_student):
    outsider = make_student('outsider@example.com', 'Outsider')

    result = AttendanceRecorder.mark_bulk(course_session, SESSION_DATE, [
        {'student_id': student.id, 'status': 'late', 'late_minutes': 12},
        {'student_id': outsider.id, 'status': 'absent'},
        {'student_id': student.id, 'status': 'sleeping'},
    ], marked_by='teacher', now=NOW)

    assert result['summary'] == {'total_requested': 3, 'successful': 1, 'failed': 2}
    assert result['results'][0]['status'] == 'late'
    assert 'error' in result['results'][1]
    assert 'Unknown status' in result['results'][2]['error']

    saved = AttendanceRecord.query.filter_by(enrollment_id=enrollment.id).one()
    assert saved.check_in_method == CheckInMethod.BULK
    assert saved.score_weight == 0.80


def test_excuse_reason_must_be_text(enrollment):
    with pytest.raises(ValidationError):
        record(enrollment, AttendanceStatus.EXCUSED, excuse_reason=5)
    assert AttendanceRecord.query.count() == 0


def test_mark_bulk_keeps_going_past_malformed_entries(enrollment, course_session, student):
    result = AttendanceRecorder.mark_bulk(course_session, SESSION_DATE, [
        {'student_id': student.id, 'status': 'excused', 'excuse_reason': 5},
        {'student_id': 'abc', 'status': 'absent'},
        ['not', 'an', 'object'],
        {'student_id': student.id, 'status': 'on time'},
    ], marked_by='teacher', now=NOW)

    assert result['summary'] == {'total_requested': 4, 'successful': 1, 'failed': 3}
    assert result['results'][0]['error'] == 'excuse_reason must be text'
    assert result['results'][1]['error'] == 'student_id must be an integer'
    assert result['results'][2]['error'] == 'Each record must be an object'
    assert result['results'][3]['status'] == 'on time'


class TestPortableUpsert:
    """Insert-then-update path used when the dialect has no ON CONFLICT."""

    @pytest.fixture(autouse=True)
    def no_native_upsert(self, monkeypatch):
        monkeypatch.setattr(attendance_service, 'UPSERT_DIALECTS', {})

    def test_insert_then_overwrite(self, enrollment):
        first = record(enrollment, AttendanceStatus.ON_TIME)
        latest = record(enrollment, AttendanceStatus.LATE, late_minutes=20)

        rows = AttendanceRecord.query.filter_by(enrollment_id=enrollment.id).all()
        assert len(rows) == 1
        assert latest.id == first.id
        assert rows[0].status == AttendanceStatus.LATE
        assert rows[0].bracket_name == 'Significant'

    def test_concurrent_insert_is_overwritten(self, enrollment, monkeypatch):
        record(enrollment, AttendanceStatus.ON_TIME)

        # first lookup misses, as if another writer inserted in between
        real_find = AttendanceRecorder._find
        lookups = []

        def racing_find(key):
            lookups.append(key)
            return None if len(lookups) == 1 else real_find(key)

        monkeypatch.setattr(AttendanceRecorder, '_find', racing_find)

        saved = record(enrollment, AttendanceStatus.ABSENT)

        assert len(lookups) == 2
        assert saved.status == AttendanceStatus.ABSENT
        assert AttendanceRecord.query.filter_by(enrollment_id=enrollment.id).count() == 1
