"""Configuration management for Midnight Lace.

Centralises environment variable loading and validation logic while keeping the
public API intentionally simple.
"""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional, TypedDict

_TRUTHY_VALUES = {"1", "true", "yes", "on"}

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_CATALOG_PATH = os.path.join(_PACKAGE_DIR, "data", "catalog.json")
DEFAULT_MOCK_DATA_PATH = os.path.join(_PACKAGE_DIR, "data", "mock_data.json")

DEV_SECRET_KEY = "dev-secret-CHANGE-ME-IN-PRODUCTION"


class AppConfig(TypedDict, total=False):
    """Typed representation of the application's configuration."""

    FLASK_SECRET_KEY: Optional[str]
    FLASK_ENV: str
    FLASK_DEBUG: bool
    TESTING: bool
    LEDGER_PATH: str
    CATALOG_PATH: str
    MOCK_DATA_PATH: str
    INITIAL_BALANCE: int
    TRANSFER_BACKEND: str
    WALLET_SERVICE_URL: str
    TRANSFER_TIMEOUT_SECONDS: int
    TRANSFER_WORKERS: int
    PROOF_THRESHOLD: int
    PROOF_SERVER_URL: str
    INDEXER_URL: str
    NODE_URL: str
    CORS_ORIGINS: str
    RATE_LIMIT_ENABLED: bool
    RATE_LIMIT_DEFAULT: str
    RATE_LIMIT_STORAGE_URI: str
    FORCE_HTTPS: bool
    LOG_LEVEL: str
    APP_NAME: str
    APP_VERSION: str
    APP_HOST: str
    APP_PORT: int


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable as a boolean."""

    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in _TRUTHY_VALUES


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable as an integer, raising on invalid input."""

    raw_value = os.getenv(name)
    if raw_value is None or raw_value == "":
        return default

    try:
        return int(raw_value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer (got {raw_value!r})") from exc


def get_config() -> AppConfig:
    """Load application configuration from environment variables."""

    return {
        # Flask Configuration
        "FLASK_SECRET_KEY": os.getenv("FLASK_SECRET_KEY"),
        "FLASK_ENV": os.getenv("FLASK_ENV", "development"),
        "FLASK_DEBUG": _get_env_bool("FLASK_DEBUG", False),
        "TESTING": _get_env_bool("TESTING", False),
        # Ledger and fixtures
        "LEDGER_PATH": os.getenv("LEDGER_PATH", "data/fan-ledger.json"),
        "CATALOG_PATH": os.getenv("CATALOG_PATH", DEFAULT_CATALOG_PATH),
        "MOCK_DATA_PATH": os.getenv("MOCK_DATA_PATH", DEFAULT_MOCK_DATA_PATH),
        "INITIAL_BALANCE": _get_env_int("INITIAL_BALANCE", 10000),
        # Transfer collaborator (wallet service)
        "TRANSFER_BACKEND": os.getenv("TRANSFER_BACKEND", "stub").lower(),
        "WALLET_SERVICE_URL": os.getenv("WALLET_SERVICE_URL", "http://localhost:3001"),
        "TRANSFER_TIMEOUT_SECONDS": _get_env_int("TRANSFER_TIMEOUT_SECONDS", 30),
        "TRANSFER_WORKERS": _get_env_int("TRANSFER_WORKERS", 4),
        # Mock proof flow and network wiring
        "PROOF_THRESHOLD": _get_env_int("PROOF_THRESHOLD", 50),
        "PROOF_SERVER_URL": os.getenv("PROOF_SERVER_URL", "http://localhost:6300"),
        "INDEXER_URL": os.getenv("INDEXER_URL", "http://localhost:8088"),
        "NODE_URL": os.getenv("NODE_URL", "http://localhost:9944"),
        # CORS Configuration
        "CORS_ORIGINS": os.getenv("CORS_ORIGINS", "*"),
        # Rate Limiting
        "RATE_LIMIT_ENABLED": _get_env_bool("RATE_LIMIT_ENABLED", True),
        "RATE_LIMIT_DEFAULT": os.getenv("RATE_LIMIT_DEFAULT", "200/hour"),
        "RATE_LIMIT_STORAGE_URI": os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        "FORCE_HTTPS": _get_env_bool(
            "FORCE_HTTPS",
            os.getenv("FLASK_ENV", "development").lower() == "production",
        ),
        # Logging
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        # Application Settings
        "APP_NAME": os.getenv("APP_NAME", "Midnight Lace"),
        "APP_VERSION": os.getenv("APP_VERSION", "1.0.0"),
        "APP_HOST": os.getenv("APP_HOST", "0.0.0.0"),
        "APP_PORT": _get_env_int("APP_PORT", 3000),
    }


def validate_config(config: Mapping[str, Any]) -> bool:
    """Validate critical configuration values.

    Args:
        config: Configuration mapping to validate.

    Returns:
        True if configuration is valid, raises ValueError otherwise.
    """

    if config.get("INITIAL_BALANCE", 0) < 0:
        raise ValueError("INITIAL_BALANCE must not be negative")

    if config.get("TRANSFER_TIMEOUT_SECONDS", 1) <= 0:
        raise ValueError("TRANSFER_TIMEOUT_SECONDS must be positive")

    backend = config.get("TRANSFER_BACKEND", "stub")
    if backend not in ("stub", "wallet_rest"):
        raise ValueError(f"Unknown TRANSFER_BACKEND {backend!r} (expected 'stub' or 'wallet_rest')")

    if config.get("FLASK_ENV") == "production":
        if not config.get("FLASK_SECRET_KEY"):
            raise ValueError("⚠️  FLASK_SECRET_KEY must be set for production!")

        if backend == "stub":
            import warnings

            warnings.warn(
                "⚠️  TRANSFER_BACKEND=stub in production - purchases will not reach the chain!",
                stacklevel=2,
            )

    return True
