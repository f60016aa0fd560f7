"""Base configuration shared by every environment."""
import os
from datetime import timedelta


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_ENABLED = True

    # Sessions are scheduled by wall-clock time of day in this zone
    SESSION_TIMEZONE = os.environ.get('SESSION_TIMEZONE', 'UTC')
    DEFAULT_GRACE_PERIOD_MINUTES = 15
    DEFAULT_PROXIMITY_RADIUS_METERS = 50

    # Check-in tokens
    CHECKIN_TOKEN_BUFFER_MINUTES = 30
    CHECKIN_TOKEN_FALLBACK_MINUTES = 120
    CHECKIN_BASE_URL = os.environ.get('CHECKIN_BASE_URL', 'http://localhost:5173')

    # Scoring
    LATE_FALLBACK_WEIGHT = 0.50

    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
