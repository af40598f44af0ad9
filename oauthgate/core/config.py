"""Application configuration via Pydantic BaseSettings."""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_log = logging.getLogger(__name__)

APP_VERSION = "0.1.0"

_DEFAULT_SESSION_SECRET = "your-secret-key-change-this"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=3000)
    app_env: Literal["development", "production", "test"] = Field(default="development")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )

    # Google OAuth client
    google_client_id: str = Field(default="")
    google_client_secret: str = Field(default="")
    google_callback_url: str = Field(
        default="http://localhost:3000/auth/google/callback",
        description="Redirect URI registered with Google",
    )
    google_authorize_url: str = Field(default="https://accounts.google.com/o/oauth2/v2/auth")
    google_token_url: str = Field(default="https://oauth2.googleapis.com/token")
    google_userinfo_url: str = Field(
        default="https://openidconnect.googleapis.com/v1/userinfo"
    )
    google_timeout_seconds: float = Field(default=10.0)

    # Sessions
    session_secret: str = Field(default=_DEFAULT_SESSION_SECRET)
    session_cookie_name: str = Field(default="oauthgate.sid")
    session_max_age_seconds: int = Field(default=24 * 60 * 60)

    # Frontend the callback redirects to (also the only CORS origin)
    client_url: str = Field(default="http://localhost:3000")

    # Backend of record; relay is enabled when set
    backend_url: str | None = Field(default=None)
    relay_timeout_seconds: float = Field(
        default=10.0, description="Timeout for the backend-of-record relay call"
    )

    # User directory: in-memory unless a database URL is given
    database_url: str | None = Field(
        default=None,
        description="Async SQLAlchemy URL, e.g. sqlite+aiosqlite:///./users.db",
    )
    expose_user_directory: bool | None = Field(
        default=None,
        description="Serve GET /api/users (defaults to on outside production)",
    )

    @computed_field
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @computed_field
    @property
    def cookie_secure(self) -> bool:
        """Session cookie is HTTPS-only in production."""
        return self.is_production

    @computed_field
    @property
    def user_directory_exposed(self) -> bool:
        if self.expose_user_directory is not None:
            return self.expose_user_directory
        return not self.is_production

    @computed_field
    @property
    def relay_enabled(self) -> bool:
        return bool(self.backend_url)

    @model_validator(mode="after")
    def _warn_default_secrets(self) -> "Settings":
        """Emit a warning when the default session secret is used outside development."""
        if not self.is_development and self.session_secret == _DEFAULT_SESSION_SECRET:
            _log.warning(
                "Default session secret detected, set SESSION_SECRET before deploying!"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
