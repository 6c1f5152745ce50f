# ==========================================================================================================
# -------------- Configuration file for the Rendimento Flask application -----------------------------------
# ==========================================================================================================
import os
from decimal import Decimal
from dotenv import load_dotenv


if os.environ.get("FLASK_ENV") != "production":
    load_dotenv()

basedir = os.path.abspath(os.path.dirname(__file__))


def _decimal_env(name, default):
    return Decimal(os.getenv(name, default))


def _normalize_database_url(url):
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+pg8000://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+pg8000://", 1)
    return url


class Config:

    SECRET_KEY = os.getenv("SECRET_KEY")
    if not SECRET_KEY:
        raise ValueError("SECRET_KEY must be set")

    FLASK_ENV = os.getenv("FLASK_ENV", "production")
    DEBUG = os.getenv("DEBUG", "False").lower() in ("true", "1", "t")
    TESTING = False

    _database_url = os.getenv("DATABASE_URL")
    if not _database_url:
        _database_url = f"sqlite:///{os.path.join(basedir, 'instance', 'rendimento.db')}"

    SQLALCHEMY_DATABASE_URI = _normalize_database_url(_database_url)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    CURRENCY = os.getenv("CURRENCY", "AOA")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    LOG_DIR = os.getenv("LOG_DIR", os.path.join(basedir, "logs"))

    # Referral commissions, level 1..3 as fractions of the purchase amount
    COMMISSION_RATES = os.getenv("COMMISSION_RATES", "0.20,0.08,0.02")

    # Daily payouts
    PAYOUT_INTERVAL_HOURS = int(os.getenv("PAYOUT_INTERVAL_HOURS", "24"))
    PAYOUT_SCHEDULER_ENABLED = os.getenv("PAYOUT_SCHEDULER_ENABLED", "True").lower() in ("true", "1", "t")
    PAYOUT_CHECK_MINUTES = int(os.getenv("PAYOUT_CHECK_MINUTES", "60"))
    PAYOUT_LOCK_TTL_SECONDS = int(os.getenv("PAYOUT_LOCK_TTL_SECONDS", "600"))

    # Bearer token for the /ops endpoints; empty disables them
    OPERATOR_TOKEN = os.getenv("OPERATOR_TOKEN", "")

    DEPOSIT_MIN = _decimal_env("DEPOSIT_MIN", "1000")
    WITHDRAWAL_MIN = _decimal_env("WITHDRAWAL_MIN", "1000")
    WITHDRAWAL_MAX = _decimal_env("WITHDRAWAL_MAX", "500000")
    WITHDRAWAL_FEE_PERCENT = _decimal_env("WITHDRAWAL_FEE_PERCENT", "5.0")
    CHECKIN_REWARD = _decimal_env("CHECKIN_REWARD", "50")

    REDIS_URL = os.getenv("REDIS_URL")
    REFERRAL_CACHE_TTL = int(os.getenv("REFERRAL_CACHE_TTL", "300"))


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    FLASK_ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    PAYOUT_SCHEDULER_ENABLED = False
    OPERATOR_TOKEN = "test-operator-token"
    REDIS_URL = None
    COMMISSION_RATES = "0.20,0.08,0.02"
    CHECKIN_REWARD = Decimal("50")
