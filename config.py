"""Application configuration classes."""

from __future__ import annotations

import os

SUPPORTED_PRICE_SOURCES = {"coinpaprika", "paprika", "mock"}
PRICE_SOURCE_ALIASES = {"paprika": "coinpaprika"}


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


class BaseConfig:
    """Base configuration shared across environments."""

    SCHEDULER_ENABLED = _get_env("SCHEDULER_ENABLED", "true").lower() == "true"
    SCHEDULER_TIMEZONE = _get_env("SCHEDULER_TIMEZONE", "UTC")
    INGESTION_INTERVAL_SECONDS = int(_get_env("INGESTION_INTERVAL_SECONDS", "60"))
    INGESTION_PAGE_SIZE = int(_get_env("INGESTION_PAGE_SIZE", "100"))
    INGESTION_MAX_ATTEMPTS = int(_get_env("INGESTION_MAX_ATTEMPTS", "3"))
    INGESTION_BACKOFF_SECONDS = float(_get_env("INGESTION_BACKOFF_SECONDS", "2"))

    APP_NAME = "crypto-tracker"
    SECRET_KEY = _get_env("SECRET_KEY", "change-me")
    SQLALCHEMY_DATABASE_URI = _get_env("DATABASE_URL", "sqlite:///crypto-tracker.db")
    REQUEST_TIMEOUT_SECONDS = int(_get_env("REQUEST_TIMEOUT_SECONDS", "5"))
    PRICE_SOURCE = _get_env("PRICE_SOURCE", "coinpaprika")
    COINPAPRIKA_API_BASE_URL = _get_env("COINPAPRIKA_API_BASE_URL", "https://api.coinpaprika.com")
    COINPAPRIKA_RATE_LIMIT = float(_get_env("COINPAPRIKA_RATE_LIMIT", "1"))
    COINPAPRIKA_MAX_RETRIES = int(_get_env("COINPAPRIKA_MAX_RETRIES", "3"))
    COINPAPRIKA_BACKOFF_SECONDS = float(_get_env("COINPAPRIKA_BACKOFF_SECONDS", "0.5"))
    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_env("LOG_JSON_ENABLED", "false").lower() == "true"
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")
    TIMING_LOGS_ENABLED = _get_env("TIMING_LOGS_ENABLED", "false").lower() == "true"
    TIMING_MIN_DURATION_MS = os.getenv("TIMING_MIN_DURATION_MS")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration used by the test-suite."""

    DEBUG = False
    TESTING = True
    SCHEDULER_ENABLED = False
    PRICE_SOURCE = "mock"


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If the configured price source is not supported.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_price_source(config_cls)
    _validate_ingestion(config_cls)
    return config_cls


def _validate_price_source(config_cls: type[BaseConfig]) -> None:
    normalized = _normalize_source(config_cls.PRICE_SOURCE)
    if normalized not in SUPPORTED_PRICE_SOURCES:
        raise ValueError(
            f"Unsupported PRICE_SOURCE '{config_cls.PRICE_SOURCE}'. "
            f"Allowed values: {sorted(SUPPORTED_PRICE_SOURCES)}"
        )
    config_cls.PRICE_SOURCE = normalized


def _validate_ingestion(config_cls: type[BaseConfig]) -> None:
    if config_cls.INGESTION_PAGE_SIZE <= 0:
        raise ValueError("INGESTION_PAGE_SIZE must be a positive integer")
    if config_cls.INGESTION_MAX_ATTEMPTS <= 0:
        raise ValueError("INGESTION_MAX_ATTEMPTS must be a positive integer")
    if config_cls.INGESTION_INTERVAL_SECONDS <= 0:
        raise ValueError("INGESTION_INTERVAL_SECONDS must be a positive integer")
    if config_cls.COINPAPRIKA_RATE_LIMIT <= 0:
        raise ValueError("COINPAPRIKA_RATE_LIMIT must be positive")


def _normalize_source(value: str | None) -> str:
    if not value:
        return ""
    normalized = value.strip().lower()
    return PRICE_SOURCE_ALIASES.get(normalized, normalized)
