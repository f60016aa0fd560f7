"""Attendance recording and the end-to-end check-in flow."""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError

from checkin import db
from checkin.models.attendance import AttendanceRecord, AttendanceStatus, CheckInMethod
from checkin.models.enrollment import Enrollment
from checkin.models.session import CourseSession
from checkin.models.student import Student
from checkin.models.token import TokenKind
from checkin.services.late_bracket_service import (ON_TIME, BracketResult,
                                                   LateBracketService,
                                                   resolve_bracket)
from checkin.services.proximity_service import (Coordinates, ProximityService,
                                                check_proximity)
from checkin.services.status_service import resolve_status
from checkin.services.token_service import TokenService
from checkin.utils import helpers
from checkin.utils.errors import (AttendanceIntegrityError, FaceMatchFailed,
                                  NotEnrolled, ProximityError,
                                  SessionNotScheduled, StorageUnavailable,
                                  ValidationError)

UPSERT_DIALECTS = {
    'postgresql': postgresql_insert,
    'sqlite': sqlite_insert,
}
KEY_COLUMNS = ('enrollment_id', 'attendance_date')


@dataclass(frozen=True)
class FaceMatch:
    """Result of the external face comparator."""
    matched: bool
    confidence: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict]) -> Optional['FaceMatch']:
        if payload is None:
            return None
        if not isinstance(payload, dict) or not isinstance(payload.get('matched'), bool):
            raise ValidationError("face_match must be an object with a boolean 'matched'")
        return cls(payload['matched'], payload.get('confidence'))


@dataclass(frozen=True)
class CheckInResult:
    record: AttendanceRecord
    status: AttendanceStatus
    late_minutes: Optional[int]
    early_minutes: Optional[int]
    warning: Optional[str]
    distance_meters: Optional[float]
    bracket: Optional[BracketResult]

    def to_dict(self) -> Dict:
        return {
            'attendance_id': self.record.id,
            'status': self.status.value,
            'late_minutes': self.late_minutes,
            'early_minutes': self.early_minutes,
            'warning': self.warning,
            'distance_meters': round(self.distance_meters, 2) if self.distance_meters is not None else None,
            'bracket': self.bracket.to_dict() if self.bracket else None,
        }


class AttendanceRecorder:
    """Writes exactly one attendance record per (enrollment, date)."""

    @staticmethod
    def _check_invariants(status: AttendanceStatus, late_minutes, early_minutes, excuse_reason) -> None:
        if status == AttendanceStatus.LATE:
            if late_minutes is not None and (isinstance(late_minutes, bool)
                                             or not isinstance(late_minutes, int)
                                             or late_minutes < 0):
                raise ValidationError("late_minutes must be a non-negative whole number")
        elif late_minutes is not None:
            raise ValidationError("late_minutes is only allowed when status is late")

        if early_minutes is not None and status != AttendanceStatus.ON_TIME:
            raise ValidationError("early_minutes is only allowed when status is on time")

        if excuse_reason is not None and not isinstance(excuse_reason, str):
            raise ValidationError("excuse_reason must be text")
        if status == AttendanceStatus.EXCUSED and not (excuse_reason and excuse_reason.strip()):
            raise ValidationError("An excuse reason is required for excused attendance")

    @staticmethod
    def annotate(status: AttendanceStatus, late_minutes: Optional[int],
                 session_id: int) -> Optional[BracketResult]:
        """Score weight for reporting; never consulted for admission."""
        if status == AttendanceStatus.ON_TIME:
            return ON_TIME
        if status == AttendanceStatus.LATE:
            config = LateBracketService.load_config(session_id)
            if late_minutes is None:
                return BracketResult('Unclassified', config.fallback_weight, 'fallback')
            return resolve_bracket(late_minutes, config)
        return None

    @staticmethod
    def record(enrollment: Enrollment, attendance_date: date, status: AttendanceStatus,
               method: CheckInMethod, marked_by: str, late_minutes: int = None,
               early_minutes: int = None, excuse_reason: str = None,
               check_in_time: datetime = None, coordinates: Coordinates = None,
               distance_meters: float = None, host_address: str = None,
               now: datetime = None, bracket: BracketResult = None) -> AttendanceRecord:
        """Insert or overwrite the record for (enrollment, date).

        ``bracket`` is the annotation already resolved by the caller; when
        omitted it is resolved here.
        """
        AttendanceRecorder._check_invariants(status, late_minutes, early_minutes, excuse_reason)

        session = enrollment.session
        if not session.is_active_on(attendance_date):
            raise SessionNotScheduled(
                f"{attendance_date.isoformat()} is outside the active dates of session '{session.name}'"
            )

        if bracket is None:
            bracket = AttendanceRecorder.annotate(status, late_minutes, session.id)
        now = now or helpers.local_now()
        stamp = helpers.utcnow()

        values = {
            'enrollment_id': enrollment.id,
            'attendance_date': attendance_date,
            'session_id': session.id,
            'student_id': enrollment.student_id,
            'status': status,
            'late_minutes': late_minutes,
            'early_minutes': early_minutes,
            'excuse_reason': excuse_reason.strip() if status == AttendanceStatus.EXCUSED else None,
            'check_in_time': check_in_time,
            'check_in_method': method,
            'gps_latitude': coordinates.latitude if coordinates else None,
            'gps_longitude': coordinates.longitude if coordinates else None,
            'gps_accuracy': coordinates.accuracy if coordinates else None,
            'distance_from_host': round(distance_meters, 2) if distance_meters is not None else None,
            'host_address': host_address,
            'score_weight': bracket.score_weight if bracket else None,
            'bracket_name': bracket.label if bracket else None,
            'marked_by': marked_by,
            'marked_at': now,
            'created_at': stamp,
            'updated_at': stamp,
        }

        try:
            AttendanceRecorder._upsert(values)
        except OperationalError as e:
            db.session.rollback()
            current_app.logger.error('Attendance write for enrollment %s on %s failed: %s',
                                     enrollment.id, attendance_date, e)
            raise StorageUnavailable()

        return AttendanceRecord.query.filter_by(
            enrollment_id=enrollment.id,
            attendance_date=attendance_date
        ).one()

    @staticmethod
    def _upsert(values: Dict) -> None:
        """Atomic insert-or-update keyed on (enrollment_id, attendance_date)."""
        dialect = db.session.get_bind().dialect.name
        insert = UPSERT_DIALECTS.get(dialect)

        if insert is not None:
            stmt = insert(AttendanceRecord.__table__).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=list(KEY_COLUMNS),
                set_={key: stmt.excluded[key] for key in values
                      if key not in KEY_COLUMNS and key != 'created_at'}
            )
            try:
                db.session.execute(stmt)
                db.session.commit()
            except IntegrityError as e:
                db.session.rollback()
                current_app.logger.error('Attendance upsert rejected: %s', e)
                raise AttendanceIntegrityError()
            return

        AttendanceRecorder._insert_or_update(values)

    @staticmethod
    def _find(key: Dict) -> Optional[AttendanceRecord]:
        return AttendanceRecord.query.filter_by(**key).first()

    @staticmethod
    def _insert_or_update(values: Dict) -> None:
        """Portable path for dialects without ON CONFLICT."""
        key = {k: values[k] for k in KEY_COLUMNS}
        existing = AttendanceRecorder._find(key)
        try:
            if existing is None:
                db.session.add(AttendanceRecord(**values))
                db.session.commit()
                return
        except IntegrityError:
            # a concurrent writer inserted the same key first; overwrite it
            db.session.rollback()
            existing = AttendanceRecorder._find(key)
            if existing is None:
                raise AttendanceIntegrityError()

        for column, value in values.items():
            if column not in KEY_COLUMNS and column != 'created_at':
                setattr(existing, column, value)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AttendanceIntegrityError()

    @staticmethod
    def mark(session: CourseSession, student_id: int, attendance_date: date,
             status: AttendanceStatus, marked_by: str, late_minutes: int = None,
             excuse_reason: str = None, method: CheckInMethod = CheckInMethod.MANUAL,
             now: datetime = None) -> AttendanceRecord:
        """Manual marking or correction by a teacher."""
        enrollment = Enrollment.query.filter_by(student_id=student_id, session_id=session.id).first()
        if enrollment is None:
            raise NotEnrolled(f"Student {student_id} is not enrolled in this session")

        return AttendanceRecorder.record(
            enrollment, attendance_date, status,
            method=method,
            marked_by=marked_by,
            late_minutes=late_minutes,
            excuse_reason=excuse_reason,
            now=now,
        )

    @staticmethod
    def mark_bulk(session: CourseSession, attendance_date: date, entries: List[Dict],
                  marked_by: str, now: datetime = None) -> Dict:
        """Mark many students; each entry succeeds or reports its own error."""
        results = []
        for entry in entries:
            if not isinstance(entry, dict):
                results.append({'student_id': None, 'error': 'Each record must be an object'})
                continue

            student_id = entry.get('student_id')
            if isinstance(student_id, bool) or not isinstance(student_id, int):
                results.append({'student_id': student_id, 'error': 'student_id must be an integer'})
                continue

            try:
                status = AttendanceStatus(entry.get('status'))
                record = AttendanceRecorder.mark(
                    session, student_id, attendance_date, status,
                    marked_by=marked_by,
                    late_minutes=entry.get('late_minutes'),
                    excuse_reason=entry.get('excuse_reason'),
                    method=CheckInMethod.BULK,
                    now=now,
                )
                results.append({'student_id': student_id, 'attendance_id': record.id,
                                'status': record.status.value})
            except ValueError:
                results.append({'student_id': student_id,
                                'error': f"Unknown status: {entry.get('status')}"})
            except (ValidationError, NotEnrolled, SessionNotScheduled) as e:
                results.append({'student_id': student_id, 'error': e.message})

        successful = len([r for r in results if 'error' not in r])
        return {
            'results': results,
            'summary': {
                'total_requested': len(entries),
                'successful': successful,
                'failed': len(entries) - successful
            }
        }


class CheckInService:
    """Token-driven self check-in."""

    @staticmethod
    def check_in(student: Student, token: str, coordinates: Coordinates = None,
                 method: str = None, face_match: FaceMatch = None,
                 now: datetime = None) -> CheckInResult:
        # one clock reading for the whole flow
        now = now or helpers.local_now()

        validation = TokenService.validate(token, now=now)
        if method is not None and method != validation.kind.value:
            raise ValidationError(
                f"This link is for {validation.kind.value} check-in, not {method}"
            )

        session = db.session.get(CourseSession, validation.session_id)
        attendance_date = validation.attendance_date

        enrollment = Enrollment.query.filter_by(student_id=student.id, session_id=session.id).first()
        if enrollment is None or not enrollment.is_active:
            raise NotEnrolled()

        if validation.kind == TokenKind.PHOTO and (face_match is None or not face_match.matched):
            raise FaceMatchFailed()

        host = ProximityService.resolve_effective_host(session, attendance_date)
        try:
            decision = check_proximity(session.proximity_radius_meters, host, coordinates)
        except ProximityError as e:
            current_app.logger.warning(
                'Check-in rejected for student %s, session %s on %s: %s',
                student.id, session.id, attendance_date, e.message
            )
            raise

        start, end = session.window_for(attendance_date) or (None, None)
        resolution = resolve_status(start, end, session.grace_period_minutes, now)
        bracket = AttendanceRecorder.annotate(resolution.status, resolution.late_minutes, session.id)

        record = AttendanceRecorder.record(
            enrollment, attendance_date, resolution.status,
            method=CheckInMethod(validation.kind.value),
            marked_by=f"{student.email or student.name} - self check-in",
            late_minutes=resolution.late_minutes,
            early_minutes=resolution.early_minutes,
            check_in_time=now,
            coordinates=coordinates,
            distance_meters=decision.distance_meters,
            host_address=host.address if host else None,
            now=now,
            bracket=bracket,
        )

        if resolution.warning:
            current_app.logger.info('Student %s checked in to session %s after it ended',
                                    student.id, session.id)

        return CheckInResult(
            record=record,
            status=resolution.status,
            late_minutes=resolution.late_minutes,
            early_minutes=resolution.early_minutes,
            warning=resolution.warning,
            distance_meters=decision.distance_meters,
            bracket=bracket,
        )
