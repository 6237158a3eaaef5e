"""Configuration module for the cashier application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Session Configuration (the terminal draft lives in the signed cookie)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours
    # Browsers drop cookies over ~4 KB; larger drafts are refused instead
    SESSION_COOKIE_MAX_BYTES = int(os.getenv('SESSION_COOKIE_MAX_BYTES', '4000'))

    # CSRF (Flask-WTF)
    WTF_CSRF_ENABLED = os.getenv('WTF_CSRF_ENABLED', 'true').lower() == 'true'

    # POS backend (catalog, transaction numbers, checkout, sale updates)
    POS_API_BASE_URL = os.getenv('POS_API_BASE_URL', 'http://localhost:8000')
    POS_API_TOKEN = os.getenv('POS_API_TOKEN')
    POS_API_TIMEOUT = int(os.getenv('POS_API_TIMEOUT', '10'))

    # Placeholder transaction numbers when the issuer is unreachable
    LOCAL_TRANSACTION_PREFIX = os.getenv('LOCAL_TRANSACTION_PREFIX', 'LOCAL')

    # Redis Cache Configuration
    # Read cache for catalog browsing; checkout re-checks always bypass it
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_DEFAULT_TTL = int(os.getenv('CACHE_DEFAULT_TTL', '60'))  # seconds
    CACHE_CATALOG_TTL = int(os.getenv('CACHE_CATALOG_TTL', '30'))
    CACHE_CATEGORIES_TTL = int(os.getenv('CACHE_CATEGORIES_TTL', '300'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'cashier')
