"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Formdesk happen here. No module should
call os.getenv() or os.environ.get() directly. api.main.create_app() builds
a Settings instance once and hands the relevant values to each component
at construction time.

Design patterns used:
  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Development mode generates a signing key
      with a warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every issued session token.

  ENVIRONMENT=production controls two things: the Secure attribute on the
  session cookie, and whether unexpected error details reach the client.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or forms/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("formdesk.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Defaults let Settings(environment="development") be built in tests
    without a real .env file. Production is the default environment so a
    forgotten variable fails closed.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: Literal["development", "production"] = "production"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = ["http://localhost:3000"]
    # Requests declaring a larger Content-Length are rejected with 413.
    max_body_bytes: int = Field(default=10 * 1024, ge=1)

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///formdesk.db"
    db_connect_attempts: int = Field(default=5, ge=1)
    db_connect_backoff_seconds: float = Field(default=0.5, ge=0)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = Field(default=24 * 60 * 60, gt=0)
    # bcrypt accepts 4..31; 10 matches the cost the stored digests were built with.
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def secure_cookies(self) -> bool:
        return self.is_production

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Development: auto-generate a random key with a warning. Sessions will
            not survive a restart, which is acceptable for local work.

        Production: refuse to start without SECRET_KEY. A random key would
            silently log every user out on each restart.

        Both: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if not self.is_production:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production. "
                    "Set SECRET_KEY in your environment or .env file, "
                    "or set ENVIRONMENT=development for local work."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings built from the environment.

    Only entry points (create_app() without an explicit Settings, and the
    main.py runner) call this. Components receive their configuration as
    constructor arguments and never call it themselves.

    In tests: build Settings(...) directly and pass it to create_app().
    """
    return Settings()
