"""Application configuration and settings management."""
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    """Global application settings loaded from environment variables or .env."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        env_prefix="MEMBERHUB_",
        extra="ignore",
    )

    app_name: str = "memberhub"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./memberhub.db"
    database_driver: str = "postgresql+asyncpg"
    database_host: str | None = None
    database_user: str | None = None
    database_password: str | None = None
    database_name: str | None = None

    # Sessions
    session_secret: str = "change-me-session"
    cookie_secret: str = "change-me-cookie"
    session_cookie_name: str = "memberhub_session"
    session_expire_minutes: int = 60
    session_cookie_secure: bool = False
    session_cleanup_interval_seconds: int = 300

    # Passwords
    password_hash_rounds: int = 12

    # Static images shown on the members page
    public_dir: Path = PROJECT_ROOT / "public"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return str(value).strip().upper()

    @property
    def resolved_database_url(self) -> str:
        """Build the connection URL from host credentials when a host is configured."""

        if not self.database_host:
            return self.database_url
        url = URL.create(
            self.database_driver,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            database=self.database_name,
        )
        return url.render_as_string(hide_password=False)

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_expire_minutes * 60


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings instance."""

    return Settings()
