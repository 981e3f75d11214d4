"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CrudAdmin happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_secret -> SESSION_SECRET).

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Rejects weak session secrets before the app serves a request.

Startup contract:
  DATABASE_URL and SESSION_SECRET have no defaults. A missing or invalid value
  raises pydantic.ValidationError from get_settings(), which the lifespan lets
  propagate so the server refuses to start instead of failing per request.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or customers/.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("crudadmin.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `app_env` reads from APP_ENV, `database_url` reads from DATABASE_URL.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    app_env: Literal["development", "production", "test"] = "development"
    database_url: str = Field(min_length=1)
    session_secret: str = Field(min_length=1)

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    session_max_age: int = Field(default=7 * 24 * 60 * 60, gt=0)

    # ------------------------------------------------------------------
    # Rate limiting (login + register share one fixed-window bucket per client)
    # ------------------------------------------------------------------

    auth_rate_limit: int = Field(default=5, gt=0)
    auth_rate_window_seconds: int = Field(default=60, gt=0)
    rate_limit_sweep_seconds: int = Field(default=60, gt=0)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def secure_cookies(self) -> bool:
        return self.is_production

    @property
    def session_cookie_name(self) -> str:
        """Production uses the __Host- prefix, which browsers only accept with
        Secure, Path=/ and no Domain attribute."""
        return "__Host-session" if self.is_production else "_session"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_secret(self) -> "Settings":
        """Reject session secrets too short to sign cookies safely.

        HS256 signing relies on key entropy; a short key lets an attacker
        brute-force the signature offline from a single captured cookie.
        """
        if len(self.session_secret) < _MIN_SECRET_LENGTH:
            raise ValueError(
                f"SESSION_SECRET must be at least {_MIN_SECRET_LENGTH} characters. "
                "Generate one with: python -c 'import secrets; print(secrets.token_hex(32))'"
            )
        if self.is_production and self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
            raise ValueError("DATABASE_URL points at an in-memory database, which is not allowed in production.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = Settings()
    logger.info("Configuration loaded (app_env=%s)", settings.app_env)
    return settings
