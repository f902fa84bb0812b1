import os

from dotenv import load_dotenv

load_dotenv()


class BaseApplicationSettings:
    """Base Flask application configuration populated from the environment."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    db_uri = os.environ.get("DATABASE_URI", "sqlite://")
    SQLALCHEMY_DATABASE_URI = db_uri

    # Internationalisation
    LANGUAGES = ["en", "ja"]
    BABEL_DEFAULT_LOCALE = os.environ.get("BABEL_DEFAULT_LOCALE", "en")
    BABEL_DEFAULT_TIMEZONE = os.environ.get("BABEL_DEFAULT_TIMEZONE", "UTC")

    # Database stability
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }

    if not db_uri.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS.update({
            "pool_size": 10,
            "max_overflow": 20,
        })
        if db_uri.startswith("mysql"):
            SQLALCHEMY_ENGINE_OPTIONS["connect_args"] = {"connect_timeout": 10}

    # SSH certificate authority
    SSHCA_DEFAULT_LEASE_TTL = os.environ.get("SSHCA_DEFAULT_LEASE_TTL", "768h")
    SSHCA_MAX_LEASE_TTL = os.environ.get("SSHCA_MAX_LEASE_TTL", "768h")
    SSHCA_CLOCK_SKEW = os.environ.get("SSHCA_CLOCK_SKEW", "30s")
    SSHCA_SERIAL_RETRY_LIMIT = os.environ.get("SSHCA_SERIAL_RETRY_LIMIT", "5")
    SSHCA_STORAGE_BACKEND = os.environ.get("SSHCA_STORAGE_BACKEND", "sqlalchemy")
    SSHCA_TIDY_SAFETY_BUFFER = os.environ.get("SSHCA_TIDY_SAFETY_BUFFER", "72h")
    SSHCA_TIDY_INTERVAL_SECONDS = os.environ.get("SSHCA_TIDY_INTERVAL_SECONDS", "3600")


class Config(BaseApplicationSettings):
    pass


class TestConfig(BaseApplicationSettings):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
