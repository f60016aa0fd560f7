"""Tests for grace-period status resolution."""
from datetime import datetime

from checkin.models.attendance import AttendanceStatus
from checkin.services.status_service import AFTER_SESSION_WARNING, CheckInPhase, resolve_status

START = datetime(2024, 3, 4, 9, 0)
END = datetime(2024, 3, 4, 10, 30)
GRACE = 10


def at(hour, minute, second=0):
    return datetime(2024, 3, 4, hour, minute, second)


def test_inside_grace_is_on_time():
    result = resolve_status(START, END, GRACE, at(9, 9))
    assert result.status == AttendanceStatus.ON_TIME
    assert result.phase == CheckInPhase.ON_TIME
    assert result.late_minutes is None
    assert result.warning is None


def test_exact_grace_boundary_is_on_time():
    assert resolve_status(START, END, GRACE, at(9, 10)).status == AttendanceStatus.ON_TIME


def test_after_grace_is_late_from_scheduled_start():
    result = resolve_status(START, END, GRACE, at(9, 11))
    assert result.status == AttendanceStatus.LATE
    assert result.phase == CheckInPhase.LATE
    assert result.late_minutes == 11


def test_first_partial_minute_past_grace_exceeds_grace():
    result = resolve_status(START, END, GRACE, at(9, 10, 30))
    assert result.status == AttendanceStatus.LATE
    assert result.late_minutes == 11


def test_after_session_is_late_with_warning():
    result = resolve_status(START, END, GRACE, at(10, 31))
    assert result.status == AttendanceStatus.LATE
    assert result.phase == CheckInPhase.AFTER_SESSION
    assert result.late_minutes == 91
    assert result.after_session
    assert result.warning == AFTER_SESSION_WARNING


def test_before_start_is_on_time_with_early_minutes():
    result = resolve_status(START, END, GRACE, at(8, 45))
    assert result.status == AttendanceStatus.ON_TIME
    assert result.phase == CheckInPhase.NOT_YET_OPEN
    assert result.early_minutes == 15


def test_zero_grace_period():
    assert resolve_status(START, END, 0, at(9, 0)).status == AttendanceStatus.ON_TIME
    assert resolve_status(START, END, 0, at(9, 0, 1)).late_minutes == 1


def test_unknown_start_is_on_time():
    result = resolve_status(None, None, GRACE, at(23, 59))
    assert result.status == AttendanceStatus.ON_TIME
    assert result.late_minutes is None
