"""
Frontend Configuration

Loads the settings the JobPulse web client needs from environment variables
(optionally via a local .env file). Settings are read once and cached.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: '{raw}', defaulting to {default}")
        return default


@dataclass
class Settings:
    """
    Configuration for the web client.

    Loaded from environment variables with sensible defaults.
    """
    # Backend REST API
    api_base_url: str = "http://localhost:5000/api"
    api_timeout: int = 10  # seconds

    # Flask
    secret_key: Optional[str] = None
    environment: str = "development"
    port: int = 3000
    debug: bool = False

    # Credential persistence
    cookie_expiry_days: int = 30

    # Redirect guard
    redirect_cooldown_ms: int = 100
    redirect_history_reset_ms: int = 2000
    redirect_max_history: int = 10

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Load configuration from environment variables.

        Environment variables:
        - API_BASE_URL: Backend base URL (default: http://localhost:5000/api)
        - API_TIMEOUT: Backend request timeout in seconds (default: 10)
        - FLASK_SECRET_KEY: Session signing key (required in production)
        - FLASK_ENV: development/production
        - FLASK_PORT / FLASK_DEBUG: development server options
        - COOKIE_EXPIRY_DAYS: Lifetime of the token/userType cookies (default: 30)
        - REDIRECT_COOLDOWN_MS / REDIRECT_HISTORY_RESET_MS / REDIRECT_MAX_HISTORY
        """
        environment = os.getenv("FLASK_ENV", "development").lower()
        secret_key = os.getenv("FLASK_SECRET_KEY")

        if not secret_key:
            if environment == "production":
                raise RuntimeError(
                    "CRITICAL: FLASK_SECRET_KEY not set. "
                    "Sessions (and the stored credentials) would be invalidated on every restart."
                )
            logger.warning(
                "FLASK_SECRET_KEY not set. Generating random key "
                "(sessions will not persist between restarts)"
            )
            secret_key = os.urandom(24).hex()

        return cls(
            api_base_url=os.getenv("API_BASE_URL", cls.api_base_url).rstrip("/"),
            api_timeout=_env_int("API_TIMEOUT", cls.api_timeout),
            secret_key=secret_key,
            environment=environment,
            port=_env_int("FLASK_PORT", cls.port),
            debug=_env_bool("FLASK_DEBUG"),
            cookie_expiry_days=_env_int("COOKIE_EXPIRY_DAYS", cls.cookie_expiry_days),
            redirect_cooldown_ms=_env_int("REDIRECT_COOLDOWN_MS", cls.redirect_cooldown_ms),
            redirect_history_reset_ms=_env_int(
                "REDIRECT_HISTORY_RESET_MS", cls.redirect_history_reset_ms
            ),
            redirect_max_history=_env_int("REDIRECT_MAX_HISTORY", cls.redirect_max_history),
        )


# Singleton settings instance
_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings instance, loading it from the environment on first use."""
    global _settings_instance

    if _settings_instance is None:
        _settings_instance = Settings.from_env()
        logger.info(f"Loaded settings (environment={_settings_instance.environment})")

    return _settings_instance


def reset_settings() -> None:
    """Reset the settings singleton."""
    global _settings_instance
    _settings_instance = None
