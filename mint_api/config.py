# mint_api/config.py
import os


def _as_bool(v) -> bool:
    return str(v).lower() in ("1", "true", "yes", "on")


class BaseConfig:
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://redis:6379/0")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

    # --- DB ---
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "postgresql+psycopg2://app_user:app_pass@db:5432/nft_minting"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # --- Uploads ---
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024  # margen para los campos del form
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:5000")

    # --- Chain ---
    CONTRACT_ADDRESS = os.environ.get("CONTRACT_ADDRESS")
    MINTING_STATS_AUTO_INIT = _as_bool(os.environ.get("MINTING_STATS_AUTO_INIT", "true"))
    FAUCET_AMOUNT_ETH = os.environ.get("FAUCET_AMOUNT_ETH", "0.5")

    # Escrituras diferidas (metadata + blobs)
    WRITE_BEHIND_TIMEOUT = float(os.environ.get("WRITE_BEHIND_TIMEOUT", 30))

    # --- Rate limiting (Flask-Limiter) ---
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True
    METADATA_CREATE_RATE_LIMIT = os.environ.get("METADATA_CREATE_RATE_LIMIT", "10 per 15 minutes")
    FAUCET_RATE_LIMIT = os.environ.get("FAUCET_RATE_LIMIT", "1 per day")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = False
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MINTING_STATS_AUTO_INIT = False
    PUBLIC_BASE_URL = "http://testserver"
    CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
    METADATA_CREATE_RATE_LIMIT = "1000 per minute"
    FAUCET_RATE_LIMIT = "1000 per minute"
