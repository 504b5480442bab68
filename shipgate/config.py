"""
Application configuration
"""
import logging
import os

logger = logging.getLogger(__name__)

basedir = os.path.abspath(os.path.dirname(__file__))


def _number_env(name, default, cast):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _float_env(name, default):
    return _number_env(name, float(default), float)


def _int_env(name, default):
    return _number_env(name, int(default), int)


class Config:
    """Base configuration."""
    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # SQLAlchemy (audit trail only)
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, '..', 'instance', 'shipgate.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Carrier account (support both current and legacy env var spellings)
    CARRIER_CUSTOMER_CODE = os.environ.get('CARRIER_CUSTOMER_CODE') or os.environ.get('CARRIER_CUSTOMER_ID')
    CARRIER_API_KEY = os.environ.get('CARRIER_API_KEY') or os.environ.get('CARRIER_API_KEY_NEW')
    CARRIER_SERVICE_TYPE = os.environ.get('CARRIER_SERVICE_TYPE', 'GROUND EXPRESS')
    CARRIER_COMMODITY_ID = os.environ.get('CARRIER_COMMODITY_ID', 'Electric items')
    CARRIER_ACCOUNT_TYPE = os.environ.get('CARRIER_ACCOUNT_TYPE', 'STANDARD')
    CARRIER_REVERSE_ONLY_CUSTOMER_CODES = os.environ.get('CARRIER_REVERSE_ONLY_CUSTOMER_CODES', 'GL10074')
    # Comma separated, tried in order
    CARRIER_ENDPOINTS = os.environ.get('CARRIER_ENDPOINTS')

    # Carrier tracking API has its own credentials
    CARRIER_TRACKING_ACCESS_TOKEN = os.environ.get('CARRIER_TRACKING_ACCESS_TOKEN')
    CARRIER_TRACKING_USERNAME = os.environ.get('CARRIER_TRACKING_USERNAME')
    CARRIER_TRACKING_PASSWORD = os.environ.get('CARRIER_TRACKING_PASSWORD')

    # Retry policy
    CARRIER_MAX_RETRIES = _int_env('CARRIER_MAX_RETRIES', 3)
    CARRIER_RETRY_DELAY_SECONDS = _float_env('CARRIER_RETRY_DELAY_SECONDS', 2.0)

    # Per-call timeouts (seconds)
    CARRIER_CREATE_TIMEOUT = _float_env('CARRIER_CREATE_TIMEOUT', 45)
    CARRIER_TRACKING_TIMEOUT = _float_env('CARRIER_TRACKING_TIMEOUT', 30)
    CARRIER_LABEL_TIMEOUT = _float_env('CARRIER_LABEL_TIMEOUT', 30)
    CARRIER_CANCEL_TIMEOUT = _float_env('CARRIER_CANCEL_TIMEOUT', 30)
    CARRIER_SERVICEABILITY_TIMEOUT = _float_env('CARRIER_SERVICEABILITY_TIMEOUT', 15)

    # Bulk tracking
    TRACKING_BATCH_SIZE = _int_env('TRACKING_BATCH_SIZE', 10)
    TRACKING_BATCH_PAUSE_SECONDS = _float_env('TRACKING_BATCH_PAUSE_SECONDS', 1.0)

    # Shipment references and links
    SHIPMENT_REFERENCE_PREFIX = os.environ.get('SHIPMENT_REFERENCE_PREFIX', 'SG')
    CARRIER_TRACKING_URL_TEMPLATE = os.environ.get(
        'CARRIER_TRACKING_URL_TEMPLATE',
        'https://www.dtdc.in/tracking/tracking_results.asp?strCnno={awb}'
    )
    FALLBACK_TRACKING_URL_TEMPLATE = os.environ.get(
        'FALLBACK_TRACKING_URL_TEMPLATE', '/api/shipments/{awb}/tracking'
    )

    # Where attempt logs go: 'database' or 'memory'
    CARRIER_AUDIT_BACKEND = os.environ.get('CARRIER_AUDIT_BACKEND', 'database')

    # CORS
    ENABLE_CORS = os.environ.get('ENABLE_CORS', 'false').lower() == 'true'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    # Override with production values
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or Config.SQLALCHEMY_DATABASE_URI


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    # Flask-SQLAlchemy 3.x uses session options for expire_on_commit
    SQLALCHEMY_SESSION_OPTIONS = {'expire_on_commit': False}

    # Never talk to the real carrier from tests
    CARRIER_CUSTOMER_CODE = None
    CARRIER_API_KEY = None
    CARRIER_TRACKING_ACCESS_TOKEN = None
    CARRIER_TRACKING_USERNAME = None
    CARRIER_TRACKING_PASSWORD = None
    CARRIER_ENDPOINTS = None
    CARRIER_ACCOUNT_TYPE = 'STANDARD'
    CARRIER_RETRY_DELAY_SECONDS = 0.0
    TRACKING_BATCH_PAUSE_SECONDS = 0.0


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
