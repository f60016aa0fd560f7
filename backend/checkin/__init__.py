"""Attendance check-in service - Application Factory."""
import logging
import os

import click
import redis
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
# default limits come from RATELIMIT_DEFAULT
limiter = Limiter(key_func=get_remote_address)


def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    app.config.from_object(get_config(config_name))

    # Initialize extensions
    from checkin import models  # noqa: F401
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    setup_logging(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Attendance Check-In Service',
            'version': '1.0.0',
            'rate_limit_storage': rate_limit_storage_status(app)
        })

    return app


def rate_limit_storage_status(app: Flask) -> str:
    """Reachability of the rate-limit backend; only Redis is probed."""
    uri = app.config.get('RATELIMIT_STORAGE_URI') or 'memory://'
    if not uri.startswith(('redis://', 'rediss://')):
        return 'memory'
    try:
        redis.Redis.from_url(uri, socket_connect_timeout=1).ping()
    except redis.RedisError as e:
        app.logger.warning('Rate limit storage unreachable: %s', e)
        return 'unavailable'
    return 'ok'


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from checkin.api.auth import auth_bp
    from checkin.api.sessions import sessions_bp
    from checkin.api.brackets import brackets_bp
    from checkin.api.enrollments import enrollments_bp
    from checkin.api.tokens import tokens_bp
    from checkin.api.checkin import checkin_bp
    from checkin.api.attendance import attendance_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # Configuration
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(brackets_bp, url_prefix='/api/brackets')
    app.register_blueprint(enrollments_bp, url_prefix='/api/enrollments')

    # Check-in
    app.register_blueprint(tokens_bp, url_prefix='/api/tokens')
    app.register_blueprint(checkin_bp, url_prefix='/api/checkin')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from sqlalchemy.exc import DBAPIError, IntegrityError
    from werkzeug.exceptions import HTTPException

    from checkin.utils.errors import CheckInError, StorageUnavailable
    from checkin.utils.helpers import error_response, handle_error

    @app.errorhandler(CheckInError)
    def handle_checkin_error(e):
        return error_response(e.message, e.status_code, **e.to_dict())

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        app.logger.error('Integrity error: %s', e.orig)
        return error_response("Request conflicts with existing data", 409, code='conflict', retryable=False)

    @app.errorhandler(DBAPIError)
    def handle_storage_error(e):
        db.session.rollback()
        app.logger.error('Storage error: %s', e)
        unavailable = StorageUnavailable()
        return error_response(unavailable.message, unavailable.status_code, **unavailable.to_dict())

    @app.errorhandler(404)
    def not_found(error):
        return handle_error(error, 404)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return handle_error(error, 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e, e.code)

    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error_response('Token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return error_response('Invalid token', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return error_response('Authorization token required', 401)


def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)

        app.logger.info('Attendance check-in service startup')


def register_commands(app: Flask) -> None:
    """Register CLI commands."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database and install default late brackets."""
        from checkin.services.late_bracket_service import LateBracketService

        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')

        db.create_all()
        click.echo('Created all tables.')

        written = LateBracketService.seed_defaults()
        click.echo(f'Installed {written} default late brackets.')

    @app.cli.command('seed-brackets')
    @click.option('--overwrite', is_flag=True, help='Replace existing global brackets')
    def seed_brackets(overwrite):
        """Install the default global late brackets."""
        from checkin.services.late_bracket_service import LateBracketService

        written = LateBracketService.seed_defaults(overwrite=overwrite)
        if written:
            click.echo(f'Installed {written} default late brackets.')
        else:
            click.echo('Global brackets already configured; use --overwrite to replace them.')

    @app.cli.command('create-admin')
    def create_admin():
        """Create admin user."""
        from sqlalchemy.exc import IntegrityError

        from checkin.models.user import User, UserRole

        email = click.prompt('Admin email')
        name = click.prompt('Admin name')
        password = click.prompt('Password', hide_input=True, confirmation_prompt=True)

        admin = User(email=email.lower().strip(), name=name, role=UserRole.ADMIN)
        admin.set_password(password)

        try:
            db.session.add(admin)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException(f'User {email} already exists')
        click.echo(f'Admin user created: {email}')
