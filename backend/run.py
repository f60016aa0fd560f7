"""Application entry point."""
import os
from datetime import time, timedelta

import click
from dotenv import load_dotenv
from flask.cli import with_appcontext

# Load environment variables before the config classes read them
load_dotenv()

from checkin import create_app, db  # noqa: E402

app = create_app(os.getenv('FLASK_ENV', 'development'))


@app.cli.command('drop-db')
@with_appcontext
def drop_db():
    """Drop all database tables."""
    if click.confirm('Are you sure you want to drop all tables?'):
        db.drop_all()
        click.echo('Database tables dropped.')


@app.cli.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create a demo teacher, student and session for local testing."""
    from checkin.models import (CourseSession, Enrollment, Student, Teacher,
                                User, UserRole, WeekDay)
    from checkin.services.late_bracket_service import LateBracketService
    from checkin.utils.helpers import local_now

    if User.query.filter_by(email='teacher@example.com').first():
        click.echo('Demo data already present.')
        return

    today = local_now().date()

    teacher_user = User(email='teacher@example.com', name='Demo Teacher', role=UserRole.TEACHER)
    teacher_user.set_password('teacher123')
    student_user = User(email='student@example.com', name='Demo Student', role=UserRole.STUDENT)
    student_user.set_password('student123')
    db.session.add_all([teacher_user, student_user])
    db.session.flush()

    teacher = Teacher(user_id=teacher_user.id, name=teacher_user.name, email=teacher_user.email,
                      address='1 Campus Road', address_latitude=0.0, address_longitude=0.0)
    student = Student(user_id=student_user.id, name=student_user.name, email=student_user.email)
    db.session.add_all([teacher, student])
    db.session.flush()

    session = CourseSession(
        name='Demo Session',
        teacher_id=teacher.id,
        day_of_week=WeekDay(today.weekday()),
        start_date=today - timedelta(days=30),
        end_date=today + timedelta(days=90),
        start_time=time(9, 0),
        end_time=time(10, 30),
        grace_period_minutes=15,
        proximity_radius_meters=50,
    )
    db.session.add(session)
    db.session.flush()

    db.session.add(Enrollment(student_id=student.id, session_id=session.id))
    db.session.commit()

    LateBracketService.seed_defaults()

    click.echo('Demo data created.')
    click.echo('Teacher: teacher@example.com / teacher123')
    click.echo('Student: student@example.com / student123')


if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 5000))
    host = os.environ.get('HOST', '127.0.0.1')
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.run(host=host, port=port, debug=debug)
