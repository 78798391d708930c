"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "Compliance_Hub"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite:///./compliance_hub.db"
    DATABASE_ECHO: bool = False

    # JWT (tokens are issued by the identity provider; we only verify them)
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_LEEWAY_SECONDS: int = 30  # clock skew tolerance for exp validation

    # Recurring tasks: hard cap on instances generated from one template
    RECURRENCE_MAX_OCCURRENCES: int = 366

    # Calendar projection: widest window a caller may request
    CALENDAR_MAX_WINDOW_DAYS: int = 400

    # AI suggestion oracle (OpenAI-compatible chat completions endpoint)
    AI_HTTP_BASE: str | None = None
    AI_HTTP_API_KEY: str | None = None
    AI_HTTP_MODEL: str = "gpt-4o-mini"
    AI_HTTP_TIMEOUT_SECONDS: int = 30
    # Suggested clause mappings at or above this confidence are applied automatically
    AI_AUTO_APPLY_MIN_CONFIDENCE: float = 0.8

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
