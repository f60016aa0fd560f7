"""Shared fixtures: app, client, model factories and auth headers."""
import math
from datetime import date, datetime, time

import pytest
from flask_jwt_extended import create_access_token

from checkin import create_app, db
from checkin.models import (CourseSession, Enrollment, EnrollmentStatus, Student,
                            Teacher, User, UserRole, WeekDay)
from checkin.services.geo_service import EARTH_RADIUS_METERS
from checkin.utils import helpers

# Monday
SESSION_DATE = date(2024, 3, 4)


def north_of(latitude: float, meters: float) -> float:
    """Latitude ``meters`` due north of ``latitude`` on the same meridian."""
    return latitude + math.degrees(meters / EARTH_RADIUS_METERS)


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def freeze_now(monkeypatch):
    """Pin the server clock; returns a setter for later moves."""
    def _freeze(moment: datetime):
        monkeypatch.setattr(helpers, 'local_now', lambda: moment)
        return moment
    return _freeze


@pytest.fixture
def make_user(app):
    def _make_user(email, role=UserRole.STUDENT, password='password123', name=None):
        user = User(email=email, name=name or email.split('@')[0], role=role)
        user.set_password(password)
        return user.save()
    return _make_user


@pytest.fixture
def teacher(make_user):
    user = make_user('teacher@example.com', role=UserRole.TEACHER, name='Teacher One')
    return Teacher(user_id=user.id, name=user.name, email=user.email,
                   address='1 Campus Road', address_latitude=0.0, address_longitude=0.0).save()


@pytest.fixture
def make_student(make_user):
    def _make_student(email='student@example.com', name='Student One', **kwargs):
        user = make_user(email, role=UserRole.STUDENT, name=name)
        return Student(user_id=user.id, name=name, email=email, **kwargs).save()
    return _make_student


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def make_session(teacher):
    def _make_session(**overrides):
        values = dict(
            name='Algorithms',
            teacher_id=teacher.id,
            day_of_week=WeekDay.MONDAY,
            start_date=date(2024, 2, 1),
            end_date=date(2024, 6, 30),
            start_time=time(9, 0),
            end_time=time(10, 30),
            grace_period_minutes=10,
            proximity_radius_meters=50,
        )
        values.update(overrides)
        return CourseSession(**values).save()
    return _make_session


@pytest.fixture
def course_session(make_session):
    return make_session()


@pytest.fixture
def enroll():
    def _enroll(student, session, status=EnrollmentStatus.ACTIVE, can_host=False):
        return Enrollment(student_id=student.id, session_id=session.id,
                          status=status, can_host=can_host).save()
    return _enroll


@pytest.fixture
def enrollment(enroll, student, course_session):
    return enroll(student, course_session)


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {'Authorization': f'Bearer {token}'}
    return _headers
