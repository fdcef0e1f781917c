"""Configuration module for Flask application."""
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
    TESTING = False

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'shroomtrack')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'shroomtrack')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'shroomtrack')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', '0') == '1'
    DB_CONNECT_TIMEOUT = int(os.getenv('DB_CONNECT_TIMEOUT', '10'))  # seconds

    # Business Information (for quotations/invoices/DOs/receipts)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'ShroomTrack ERP')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')
    CURRENCY_SYMBOL = 'RM'
    QUOTE_VALID_DAYS = int(os.getenv('QUOTE_VALID_DAYS', '14'))

    # Revenue-at-risk heuristic
    REVENUE_RISK_DAY = int(os.getenv('REVENUE_RISK_DAY', '15'))
    REVENUE_RISK_PCT = int(os.getenv('REVENUE_RISK_PCT', '50'))

    # Cost entry rates (initial values; live values sit in the rate store)
    DEFAULT_LABOR_RATE = os.getenv('DEFAULT_LABOR_RATE', '12.50')  # per hour
    DEFAULT_RAW_MATERIAL_RATE = os.getenv('DEFAULT_RAW_MATERIAL_RATE', '8.00')  # per kg


class TestingConfig(Config):
    """Configuration for the pytest suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
