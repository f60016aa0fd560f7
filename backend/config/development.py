"""Development configuration."""
import os

from .base import Config


class DevelopmentConfig(Config):
    """Development configuration class."""

    DEBUG = True
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.getenv('DEV_DATABASE_URL') or 'sqlite:///checkin_dev.db'
    SQLALCHEMY_ECHO = True

    # Redis is optional in development
    REDIS_URL = os.getenv('REDIS_URL')

    LOG_LEVEL = 'DEBUG'
