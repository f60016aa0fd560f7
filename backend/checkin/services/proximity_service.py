"""Proximity gate: is the checking-in student near the session host?"""
from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from checkin import db
from checkin.models.enrollment import Enrollment
from checkin.models.session import CourseSession, HostType, SessionDateHost
from checkin.models.student import Student
from checkin.models.teacher import Teacher
from checkin.services.geo_service import GeoService
from checkin.utils.errors import LocationRequired, TooFarFromHost, ValidationError


@dataclass(frozen=True)
class Coordinates:
    """GPS fix reported by the student's device."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict]) -> Optional['Coordinates']:
        if not payload:
            return None
        if not isinstance(payload, dict):
            raise ValidationError("coordinates must be an object")
        latitude = payload.get('latitude', payload.get('lat'))
        longitude = payload.get('longitude', payload.get('lon'))
        GeoService.validate_coordinates(latitude, longitude)
        accuracy = payload.get('accuracy', payload.get('accuracy_meters', payload.get('accuracyMeters')))
        if accuracy is not None and (not isinstance(accuracy, (int, float)) or accuracy < 0):
            raise ValidationError("accuracy must be a non-negative number")
        return cls(float(latitude), float(longitude), float(accuracy) if accuracy is not None else None)


@dataclass(frozen=True)
class Host:
    """Whoever's address is the session location on a date."""
    id: Optional[int]
    name: Optional[str]
    address: Optional[str]
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    kind: ClassVar[HostType]

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return self.latitude, self.longitude

    @classmethod
    def from_person(cls, person, address: str = None) -> 'Host':
        if person is None:
            return cls(None, None, address)
        return cls(person.id, person.name, address or person.address,
                   person.address_latitude, person.address_longitude)

    def to_dict(self) -> Dict:
        return {
            'type': self.kind.value,
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'has_coordinates': self.coordinates is not None,
        }


@dataclass(frozen=True)
class StudentHost(Host):
    kind: ClassVar[HostType] = HostType.STUDENT


@dataclass(frozen=True)
class TeacherHost(Host):
    kind: ClassVar[HostType] = HostType.TEACHER


HOST_CLASSES = {HostType.STUDENT: StudentHost, HostType.TEACHER: TeacherHost}
PERSON_MODELS = {HostType.STUDENT: Student, HostType.TEACHER: Teacher}


@dataclass(frozen=True)
class ProximityDecision:
    enabled: bool
    distance_meters: Optional[float] = None
    radius_meters: Optional[int] = None


def check_proximity(radius_meters: Optional[int], host: Optional[Host],
                    coordinates: Optional[Coordinates]) -> ProximityDecision:
    """Admit or reject a check-in by distance from the host.

    The gate is disabled when the session has no radius or the host has no
    stored coordinates. The distance is still measured whenever both ends
    are known so it can be stored with the record.
    """
    host_coordinates = host.coordinates if host is not None else None
    distance = None
    if host_coordinates is not None and coordinates is not None:
        distance = GeoService.calculate_distance(
            coordinates.latitude, coordinates.longitude, *host_coordinates
        )

    if radius_meters is None or host_coordinates is None:
        return ProximityDecision(enabled=False, distance_meters=distance)

    if coordinates is None:
        raise LocationRequired()

    if distance > radius_meters:
        raise TooFarFromHost(distance, radius_meters, host.address)

    return ProximityDecision(enabled=True, distance_meters=distance, radius_meters=radius_meters)


class ProximityService:
    """Host resolution and host location bookkeeping."""

    @staticmethod
    def resolve_effective_host(session: CourseSession, attendance_date: date) -> Optional[Host]:
        """Explicit assignment for the date, else the session's teacher, else None."""
        assignment = SessionDateHost.query.filter_by(
            session_id=session.id,
            attendance_date=attendance_date
        ).first()

        if assignment is not None:
            person = None
            if assignment.host_id is not None:
                person = db.session.get(PERSON_MODELS[assignment.host_type], assignment.host_id)
            return HOST_CLASSES[assignment.host_type].from_person(person, assignment.host_address)

        teacher = session.teacher
        if teacher is not None and teacher.has_location:
            return TeacherHost.from_person(teacher)

        return None

    @staticmethod
    def assign_host(session: CourseSession, attendance_date: date, host_type: HostType,
                    host_id: int, address: str = None) -> SessionDateHost:
        """Record who hosts (session, date).

        A student host needs an active enrollment in the session with
        ``can_host`` set; their enrollment's ``host_date`` is updated too.
        """
        person = db.session.get(PERSON_MODELS[host_type], host_id)
        if person is None:
            raise ValidationError(f"{host_type.value.title()} {host_id} not found")

        enrollment = None
        if host_type == HostType.STUDENT:
            enrollment = Enrollment.query.filter_by(student_id=host_id, session_id=session.id).first()
            if enrollment is None or not enrollment.is_active or not enrollment.can_host:
                raise ValidationError("Student is not an active host-eligible member of this session")
        elif host_type == HostType.TEACHER and person.id != session.teacher_id:
            current_app.logger.info('Teacher %s hosts session %s owned by teacher %s',
                                    person.id, session.id, session.teacher_id)

        host_address = address or person.address
        if not host_address or not host_address.strip():
            raise ValidationError("Host has no address; provide one")

        assignment = SessionDateHost.query.filter_by(
            session_id=session.id,
            attendance_date=attendance_date
        ).first() or SessionDateHost(session_id=session.id, attendance_date=attendance_date)
        assignment.host_type = host_type
        assignment.host_id = person.id
        assignment.host_address = host_address.strip()
        if enrollment is not None:
            enrollment.host_date = attendance_date

        try:
            db.session.add(assignment)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return assignment

    @staticmethod
    def update_host_coordinates(host_type: HostType, host_id: int, latitude: float,
                                longitude: float, address: str = None):
        """Persist a person's coordinates for reuse by every session they host."""
        GeoService.validate_coordinates(latitude, longitude)
        person = db.session.get(PERSON_MODELS[host_type], host_id)
        if person is None:
            raise ValidationError(f"{host_type.value.title()} {host_id} not found")

        person.address_latitude = float(latitude)
        person.address_longitude = float(longitude)
        if address:
            person.address = address.strip()
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return person
