from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Security
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    JWT_ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "crm"
    AUTO_CREATE_TABLES: bool = True

    # Redis (login rate limiting)
    REDIS_URL: str = "redis://redis:6379/0"

    # Chat
    CHAT_MESSAGE_MAX_LENGTH: int = 10000


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
