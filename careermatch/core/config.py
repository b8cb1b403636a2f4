"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "careermatch_user"
    postgres_password: str = "password"
    postgres_db: str = "careermatch_db"

    # Full SQLAlchemy URL, overrides the postgres_* parts when set
    database_url: str = ""

    # MongoDB (AI documents: voice transcripts, cached summaries)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "careermatch_docs"
    mongodb_enabled: bool = True

    # LLM provider (OpenAI-compatible, DeepSeek by default)
    llm_api_key: str = ""
    llm_base_url: str = "https://api.deepseek.com/v1"
    llm_model: str = "deepseek-chat"

    # JWT Auth (admin area)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Seed operator account, created at startup when both are set
    admin_email: str = ""
    admin_password: str = ""

    # QR deep links
    environment: str = "production"
    public_base_url: str = "https://careermatch.vercel.app"
    local_base_url: str = "http://localhost:3000"
    qr_service_url: str = "https://api.qrserver.com/v1"
    qr_size: int = 400

    # Hosting platform markers
    vercel: Optional[str] = None
    railway_environment: Optional[str] = None
    netlify: Optional[str] = None

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        return self.database_url or self.postgres_url

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key.strip())

    @property
    def is_hosted(self) -> bool:
        """True when running on a known hosting platform."""
        return any([self.vercel, self.railway_environment, self.netlify])

    @property
    def app_base_url(self) -> str:
        """
        Base URL that QR codes and redirects point at.
        Local development (and not on a hosting platform) uses the local URL.
        """
        if self.environment.lower() == "development" and not self.is_hosted:
            return self.local_base_url.rstrip("/")
        return self.public_base_url.rstrip("/")

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
