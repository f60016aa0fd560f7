"""Grace-period status resolution for a single check-in event."""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from checkin.models.attendance import AttendanceStatus

SECONDS_PER_MINUTE = 60


class CheckInPhase(enum.Enum):
    NOT_YET_OPEN = 'not_yet_open'
    ON_TIME = 'on_time'
    LATE = 'late'
    AFTER_SESSION = 'after_session'


AFTER_SESSION_WARNING = 'after-session'


@dataclass(frozen=True)
class StatusResolution:
    phase: CheckInPhase
    status: AttendanceStatus
    late_minutes: Optional[int] = None
    early_minutes: Optional[int] = None

    @property
    def after_session(self) -> bool:
        return self.phase == CheckInPhase.AFTER_SESSION

    @property
    def warning(self) -> Optional[str]:
        return AFTER_SESSION_WARNING if self.after_session else None


def _whole_minutes(seconds: float) -> int:
    return int(seconds // SECONDS_PER_MINUTE)


def resolve_status(start: Optional[datetime], end: Optional[datetime],
                   grace_period_minutes: int, now: datetime) -> StatusResolution:
    """Resolve on-time / late for a check-in at ``now``.

    Late minutes are whole minutes measured from the scheduled start, not
    from the end of the grace window, and always exceed the grace period.
    Checking in after the session ended is still late; the AFTER_SESSION
    phase only adds a warning. The grace period is trusted as
    stored; its [0, 60] range is enforced when sessions are configured.
    """
    if start is None:
        return StatusResolution(CheckInPhase.ON_TIME, AttendanceStatus.ON_TIME)

    elapsed = (now - start).total_seconds()

    if elapsed < 0:
        return StatusResolution(CheckInPhase.NOT_YET_OPEN, AttendanceStatus.ON_TIME,
                                early_minutes=_whole_minutes(-elapsed))

    if elapsed <= grace_period_minutes * SECONDS_PER_MINUTE:
        return StatusResolution(CheckInPhase.ON_TIME, AttendanceStatus.ON_TIME)

    # the first partial minute past the grace boundary still counts as past it
    late_minutes = max(_whole_minutes(elapsed), grace_period_minutes + 1)
    if end is not None and now > end:
        return StatusResolution(CheckInPhase.AFTER_SESSION, AttendanceStatus.LATE,
                                late_minutes=late_minutes)
    return StatusResolution(CheckInPhase.LATE, AttendanceStatus.LATE, late_minutes=late_minutes)
