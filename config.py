# Edunite Tuition Management Portal Configuration

import os
from datetime import timedelta
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.absolute()

DEFAULT_SECRET_KEY = 'edunite-secret-key-change-me'

class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or DEFAULT_SECRET_KEY

    # Backend API Configuration
    API_BASE_URL = os.environ.get('EDUNITE_API_BASE_URL') or 'http://localhost:3006/api'
    API_TIMEOUT = int(os.environ.get('API_TIMEOUT') or 10)  # seconds
    UPLOAD_ENDPOINT = '/upload/file'

    # Upload Configuration
    MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB, mirrors the backend limit
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE + 1024 * 1024

    # Session Configuration
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Toast Configuration
    TOAST_DEDUP_SECONDS = 3

    # Endpoints that render their own message on 403 instead of "Access denied"
    ACCESS_DENIED_SILENT_ENDPOINTS = {
        'approval_pending',
        'teacher_overview',
        'student_overview',
    }

    # Attendance Configuration
    ADMIN_ATTENDANCE_LOOKBACK_DAYS = 365
    ADMIN_ATTENDANCE_LIMIT = 100

    # Report Configuration
    REPORTS_DEFAULT_FORMAT = 'excel'

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FILE = BASE_DIR / 'logs' / 'edunite.log'
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # Development Configuration
    DEBUG = os.environ.get('DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Initialize application configuration"""
        app.config.update({
            'SECRET_KEY': cls.SECRET_KEY,
            'API_BASE_URL': cls.API_BASE_URL,
            'API_TIMEOUT': cls.API_TIMEOUT,
            'UPLOAD_ENDPOINT': cls.UPLOAD_ENDPOINT,
            'MAX_UPLOAD_SIZE': cls.MAX_UPLOAD_SIZE,
            'MAX_CONTENT_LENGTH': cls.MAX_CONTENT_LENGTH,
            'PERMANENT_SESSION_LIFETIME': cls.PERMANENT_SESSION_LIFETIME,
            'SESSION_COOKIE_SECURE': cls.SESSION_COOKIE_SECURE,
            'SESSION_COOKIE_HTTPONLY': cls.SESSION_COOKIE_HTTPONLY,
            'SESSION_COOKIE_SAMESITE': cls.SESSION_COOKIE_SAMESITE,
            'TOAST_DEDUP_SECONDS': cls.TOAST_DEDUP_SECONDS,
            'ACCESS_DENIED_SILENT_ENDPOINTS': cls.ACCESS_DENIED_SILENT_ENDPOINTS,
            'ADMIN_ATTENDANCE_LOOKBACK_DAYS': cls.ADMIN_ATTENDANCE_LOOKBACK_DAYS,
            'ADMIN_ATTENDANCE_LIMIT': cls.ADMIN_ATTENDANCE_LIMIT,
            'REPORTS_DEFAULT_FORMAT': cls.REPORTS_DEFAULT_FORMAT,
            'DEBUG': cls.DEBUG,
            'TESTING': cls.TESTING,
        })


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False

    # More verbose logging
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True

    SECRET_KEY = 'edunite-testing-key'
    API_BASE_URL = 'http://backend.test/api'

    # No waiting between identical toasts in tests
    TOAST_DEDUP_SECONDS = 0


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Enhanced security for production
    SESSION_COOKIE_SECURE = True  # Requires HTTPS

    # Production logging
    LOG_LEVEL = 'WARNING'

    @classmethod
    def init_app(cls, app):
        super().init_app(app)

        # Production-specific initialization
        import logging
        from logging.handlers import RotatingFileHandler

        # Setup file logging
        if not app.debug:
            cls.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                cls.LOG_FILE,
                maxBytes=cls.LOG_MAX_BYTES,
                backupCount=cls.LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('Edunite portal startup')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


# Environment-specific configurations
def get_config(config_name=None):
    """Get configuration based on environment variable"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')
    return config.get(config_name, DevelopmentConfig)


# Validation functions
def validate_config(config_class=Config):
    """Validate configuration settings"""
    errors = []

    base_url = config_class.API_BASE_URL or ''
    if not base_url.startswith(('http://', 'https://')):
        errors.append(f"API base URL must be an http(s) URL: {base_url!r}")

    if config_class.API_TIMEOUT <= 0:
        errors.append("API_TIMEOUT must be a positive number of seconds")

    if config_class is ProductionConfig and config_class.SECRET_KEY == DEFAULT_SECRET_KEY:
        errors.append("SECRET_KEY must be set in production")

    return errors


# Initialize configuration
def init_config(app, config_name=None):
    """Initialize application with configuration"""
    config_class = get_config(config_name)
    config_class.init_app(app)

    # Validate configuration
    errors = validate_config(config_class)
    if errors:
        for error in errors:
            app.logger.error(f"Configuration error: {error}")
        raise RuntimeError("Configuration validation failed")

    return config_class
