"""Flask Application Configuration."""
import os
from pathlib import Path

basedir = Path(__file__).parent.parent.absolute()


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database URL - supports SQLite, PostgreSQL, MariaDB/MySQL
    # Fix postgres:// → postgresql:// (some tools use deprecated format)
    _database_url = os.environ.get('DATABASE_URL', '')
    if _database_url.startswith('postgres://'):
        _database_url = _database_url.replace('postgres://', 'postgresql://', 1)
    SQLALCHEMY_DATABASE_URI = _database_url or f'sqlite:///{basedir}/instance/handyshop.db'

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Pooled connections are checked before use, stale ones recycled
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 280,
    }

    # Startup retry for the database connection (flask wait-for-db)
    DB_CONNECT_RETRIES = int(os.environ.get('DB_CONNECT_RETRIES', '30'))
    DB_CONNECT_DELAY = float(os.environ.get('DB_CONNECT_DELAY', '2'))

    # Data directories
    DATA_DIR = basedir / 'data'
    UPLOAD_DIR = Path(os.environ.get('UPLOAD_DIR', str(DATA_DIR / 'uploads')))
    EXPORTS_DIR = DATA_DIR / 'exports'

    # Logo upload
    LOGO_MAX_BYTES = 2 * 1024 * 1024
    LOGO_MAX_SIZE = (600, 300)

    # Business rules
    SUPPORT_ACCESS_MINUTES = int(os.environ.get('SUPPORT_ACCESS_MINUTES', '30'))
    PASSWORD_RESET_MINUTES = int(os.environ.get('PASSWORD_RESET_MINUTES', '15'))
    DEFAULT_TAX_RATE = os.environ.get('DEFAULT_TAX_RATE', '20')
    BASIC_PLAN_MONTHLY_REPAIRS = int(os.environ.get('BASIC_PLAN_MONTHLY_REPAIRS', '50'))
    COST_ESTIMATE_VALID_DAYS = 14

    # Public base URL for links in emails (feedback, password reset)
    PORTAL_BASE_URL = os.environ.get('PORTAL_BASE_URL', 'http://localhost:5000')

    # Session cookie for the SPA frontend
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    DB_CONNECT_RETRIES = 2
    DB_CONNECT_DELAY = 0


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
