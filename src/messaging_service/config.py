from enum import Enum
from typing import List, Optional

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class RealtimeBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Configuration settings for the Messaging Service.

    Loads from a .env file and environment variables.

    All environment variables are prefixed with MESSAGING_SERVICE_
    to avoid conflicts with other services.
    """

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- GENERAL APP SETTINGS ---
    PROJECT_NAME: str = "Messaging Service"
    DEBUG: bool = Field(False, alias="MESSAGING_SERVICE_DEBUG")
    ENVIRONMENT: Environment = Field(
        Environment.DEVELOPMENT, alias="MESSAGING_SERVICE_ENVIRONMENT"
    )
    LOGGING_LEVEL: str = Field("INFO", alias="MESSAGING_SERVICE_LOGGING_LEVEL")
    ROOT_PATH: str = Field("/api/v1", alias="MESSAGING_SERVICE_ROOT_PATH")

    # --- DATABASE SETTINGS ---
    DATABASE_URL: str = Field(..., alias="MESSAGING_SERVICE_DATABASE_URL")

    # --- CORS SETTINGS ---
    CORS_ALLOW_ORIGINS: List[str] = Field(
        ["*"], alias="MESSAGING_SERVICE_CORS_ALLOW_ORIGINS"
    )

    # --- JWT Settings for M2M and User tokens ---
    M2M_JWT_SECRET_KEY: str = Field(..., alias="MESSAGING_SERVICE_M2M_JWT_SECRET_KEY")
    M2M_JWT_ALGORITHM: str = Field("HS256", alias="MESSAGING_SERVICE_M2M_JWT_ALGORITHM")
    M2M_JWT_ISSUER: str = Field(
        "kgents_auth_service", alias="MESSAGING_SERVICE_M2M_JWT_ISSUER"
    )
    M2M_JWT_AUDIENCE: str = Field(
        "kgents_microservices", alias="MESSAGING_SERVICE_M2M_JWT_AUDIENCE"
    )

    USER_JWT_SECRET_KEY: str = Field(..., alias="MESSAGING_SERVICE_USER_JWT_SECRET_KEY")
    USER_JWT_ALGORITHM: str = Field("HS256", alias="MESSAGING_SERVICE_USER_JWT_ALGORITHM")
    USER_JWT_ISSUER: str = Field(..., alias="MESSAGING_SERVICE_USER_JWT_ISSUER")
    USER_JWT_AUDIENCE: str = Field(..., alias="MESSAGING_SERVICE_USER_JWT_AUDIENCE")

    # --- DIRECTORY (profiles / projects) ---
    # Auth service base URL (includes /api/v1)
    AUTH_SERVICE_URL: str = Field(
        "http://auth_service:8000/api/v1", alias="AUTH_SERVICE_URL"
    )
    PROJECT_SERVICE_URL: str = Field(
        "http://project_service:8000/api/v1", alias="PROJECT_SERVICE_URL"
    )
    DIRECTORY_TIMEOUT_SECONDS: float = Field(
        5.0, alias="MESSAGING_SERVICE_DIRECTORY_TIMEOUT_SECONDS"
    )

    # --- REAL-TIME CHANNEL ---
    REALTIME_BACKEND: RealtimeBackend = Field(
        RealtimeBackend.MEMORY, alias="MESSAGING_SERVICE_REALTIME_BACKEND"
    )
    REDIS_URL: Optional[str] = Field(None, alias="MESSAGING_SERVICE_REDIS_URL")
    REALTIME_QUEUE_SIZE: int = Field(100, alias="MESSAGING_SERVICE_REALTIME_QUEUE_SIZE")

    # --- RATE LIMITING ---
    RATE_LIMIT_ENABLED: bool = Field(True, alias="MESSAGING_SERVICE_RATE_LIMIT_ENABLED")
    GENERAL_RATE_LIMIT: str = Field(
        "100/minute", alias="MESSAGING_SERVICE_GENERAL_RATE_LIMIT"
    )
    CONVERSATION_CREATE_RATE_LIMIT: str = Field(
        "10/minute", alias="MESSAGING_SERVICE_CONVERSATION_CREATE_RATE_LIMIT"
    )
    MESSAGE_SEND_RATE_LIMIT: str = Field(
        "30/minute", alias="MESSAGING_SERVICE_MESSAGE_SEND_RATE_LIMIT"
    )

    # --- MESSAGES ---
    MESSAGE_MAX_LENGTH: int = Field(10000, alias="MESSAGING_SERVICE_MESSAGE_MAX_LENGTH")

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        return self.ENVIRONMENT == Environment.TESTING

    @field_validator("DATABASE_URL", mode="after")
    def validate_db_url(cls, v: PostgresDsn) -> str:
        """Ensures the database URL uses the psycopg driver."""
        return str(v).replace("postgresql://", "postgresql+psycopg://")


settings = Settings()
