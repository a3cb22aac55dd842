
import os
from pathlib import Path

from dotenv import load_dotenv


_PACKAGE_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _PACKAGE_DIR.parent

# Root .env is canonical; settleup/.env remains a fallback for local overrides.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_PACKAGE_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _normalise_db_url(raw: str) -> str:
    """
    Heroku / Render hand out 'postgres://' URLs which SQLAlchemy 2.x rejects;
    rewrite them to 'postgresql://'. Anything else is returned unchanged.
    """
    if raw.startswith("postgres://"):
        return raw.replace("postgres://", "postgresql://", 1)
    return raw


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    JSON_SORT_KEYS: bool = False

    # Level for the "settleup" logger tree (services, routes).
    LOG_LEVEL: str = _first_non_empty_env(
        "SETTLEUP_LOG_LEVEL",
        "LOG_LEVEL",
        default="INFO",
    ).upper()


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = _normalise_db_url(_first_non_empty_env(
        "DATABASE_URL",
        default="sqlite:///settleup.db",
    ))
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = _first_non_empty_env(
        "SETTLEUP_LOG_LEVEL",
        "LOG_LEVEL",
        default="DEBUG",
    ).upper()


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # In-memory SQLite keeps the integration suite self-contained.
    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "TEST_DATABASE_URL",
        default="sqlite:///:memory:",
    )
    SQLALCHEMY_ECHO: bool = False


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # Resolved at class definition time (import time).
    SQLALCHEMY_DATABASE_URI: str = _normalise_db_url(os.getenv("DATABASE_URL", ""))


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production. "
            "Set it to a valid SQLAlchemy connection string."
        )
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from settleup.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Resolves the active config class from FLASK_ENV; development if unset.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("FLASK_ENV", "development"),
    DevelopmentConfig,
)
