from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.get_logger()


class Settings(BaseSettings):
    """
    Account Service Configuration

    Loaded once at process startup and handed to the service container;
    request handlers never read settings from module globals.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        validate_assignment=True,
    )

    # Application settings
    APP_NAME: str = "AccountService"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Account Service"
    FRONTEND_URL: str = "http://localhost:3000"

    # Database - REQUIRED
    DATABASE_URL: str = Field(...)
    DATABASE_POOL_SIZE: int = Field(default=20, ge=1, le=200)
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0, le=200)
    DATABASE_POOL_TIMEOUT: float = Field(default=10.0, gt=0, le=60)
    DATABASE_POOL_RECYCLE: int = Field(default=1800, ge=300, le=3600)

    # Redis - REQUIRED for tokens and sessions
    REDIS_URL: str = Field(...)
    REDIS_POOL_SIZE: int = Field(default=50, ge=1, le=500)
    REDIS_POOL_TIMEOUT: float = Field(default=5.0, gt=0, le=60)

    # Ephemeral tokens
    TOKEN_KEY_PREFIX: str = "token:"
    EMAIL_VERIFICATION_TOKEN_TTL_SECONDS: int = 15 * 60
    PASSWORD_RESET_TOKEN_TTL_SECONDS: int = 15 * 60

    # Credential hashing (argon2id)
    HASHER_MAX_WORKERS: int = Field(default=4, ge=1, le=64)
    ARGON2_TIME_COST: int = Field(default=3, ge=1)
    ARGON2_MEMORY_COST: int = Field(default=65536, ge=8)  # KiB
    ARGON2_PARALLELISM: int = Field(default=4, ge=1)

    # Session settings
    SESSION_KEY_PREFIX: str = "session:"
    SESSION_COOKIE_NAME: str = "sessionid"
    SESSION_COOKIE_SECURE: bool = True
    SESSION_LIFETIME_SECONDS: int = Field(default=86400, ge=60)

    # When set, login and reset-request answer identically whether or not
    # the account exists.
    CONCEAL_ACCOUNT_EXISTENCE: bool = False

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "testing", "staging", "production"]
        if v not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v

    @field_validator("EMAIL_VERIFICATION_TOKEN_TTL_SECONDS", "PASSWORD_RESET_TOKEN_TTL_SECONDS")
    @classmethod
    def validate_token_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("token TTL must be positive")
        return v

    @field_validator("FRONTEND_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def email_verification_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.EMAIL_VERIFICATION_TOKEN_TTL_SECONDS)

    @property
    def password_reset_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.PASSWORD_RESET_TOKEN_TTL_SECONDS)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings(env_file: Optional[str] = None) -> Settings:
    """
    Get cached settings instance.
    Fails fast if required environment variables are missing.
    """
    try:
        if env_file:
            settings = Settings(_env_file=env_file)
        else:
            settings = Settings()
    except ValidationError as e:
        logger.error("Failed to load settings", errors=e.errors())
        raise

    logger.info(
        "Configuration loaded",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        conceal_account_existence=settings.CONCEAL_ACCOUNT_EXISTENCE,
    )
    return settings
