import os
from datetime import timedelta
from dotenv import load_dotenv

# Load .env early
load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


class Config:
    """Base configuration (shared by all environments)"""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-please-change-12345')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=60)

    # CSRF Protection (HTML forms only, the JSON API is exempt)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_SECRET_KEY = os.environ.get('WTF_CSRF_SECRET_KEY', 'another-dev-secret-change-me')
    WTF_CSRF_TIME_LIMIT = 3600  # 1 hour

    # Session token cookie
    SESSION_TOKEN_COOKIE = 'token'
    SESSION_TOKEN_SALT = os.environ.get('SESSION_TOKEN_SALT', 'billing-desk-session')
    SESSION_TOKEN_MAX_AGE = int(timedelta(days=7).total_seconds())
    TOKEN_COOKIE_SECURE = True

    # Uploads
    UPLOAD_FOLDER = os.path.join(BASE_DIR, 'static', 'uploads')
    UPLOAD_URL_PREFIX = '/static/uploads'
    UPLOAD_MAX_BYTES = 5 * 1024 * 1024  # 5MB
    ALLOWED_UPLOAD_MIME_TYPES = {'image/jpeg', 'image/png', 'image/svg+xml'}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB

    # AWS S3 (optional)
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_S3_BUCKET = os.environ.get('AWS_S3_BUCKET')
    AWS_S3_REGION = os.environ.get('AWS_S3_REGION', 'us-east-1')

    # i18n
    BABEL_DEFAULT_LOCALE = 'en'
    BABEL_SUPPORTED_LOCALES = ['en']

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # PDF
    INVOICE_CURRENCY_LABEL = os.environ.get('INVOICE_CURRENCY_LABEL', 'Rs.')

    def validate(self):
        if not self.SECRET_KEY or len(self.SECRET_KEY) < 16:
            raise ValueError("SECRET_KEY must be set and secure")
        if not self.WTF_CSRF_SECRET_KEY:
            raise ValueError("WTF_CSRF_SECRET_KEY must be set")
        if not getattr(self, 'SQLALCHEMY_DATABASE_URI', None):
            raise ValueError("SQLALCHEMY_DATABASE_URI must be set")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///billing_desk.db')
    TOKEN_COOKIE_SECURE = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    TOKEN_COOKIE_SECURE = False
    AWS_S3_BUCKET = None
    PRESERVE_CONTEXT_ON_EXCEPTION = False


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')

    def validate(self):
        super().validate()
        if not self.SQLALCHEMY_DATABASE_URI:
            raise ValueError("DATABASE_URL is required in production")


# Shortcut dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
