"""Application configuration module."""

from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Environment
    ENV: str = "development"

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./formapro.db"
    SQL_ECHO: bool = False

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    # API settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Formapro Training Platform"
    ALLOW_ORIGINS: List[str] = ["*"]

    # Authentication
    JWT_SECRET_KEY: str = "dev-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 24 * 60
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "admin123"

    # Login throttle
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_WINDOW_SECONDS: int = 15 * 60
    REDIS_URL: Optional[str] = None
    # Proxy addresses allowed to report the client address in X-Forwarded-For
    TRUSTED_PROXIES: List[str] = []

    # Question generation
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 4000
    OPENAI_TIMEOUT: float = 60.0

    # Evaluation rules
    MIN_CONTENT_LENGTH: int = 100
    MIN_SAMPLE_LENGTH: int = 50
    MAX_QUESTIONS: int = 50
    DEFAULT_QUESTIONS: int = 20
    DEFAULT_DURATION_MINUTES: int = 30

    # File storage
    UPLOAD_ROOT: str = "./uploads"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


# Create global settings instance
settings = Settings()
